# operators/local.py
from __future__ import annotations

from typing import NamedTuple, Optional, Tuple

import numpy as np

from ..core.bases import ScaledMonomialBasis
from ..core.config import CaseConfig, DGConfig, ProblemType
from ..core.quadratures import Quadrature


class FaceBlocks(NamedTuple):
    """
    Contributions of one face seen from its owner cell T:
      Att: T-T block, Atn: T-neighbour block (None on the boundary),
      rhs: load vector contribution (boundary data).
    """
    Att: np.ndarray
    Atn: Optional[np.ndarray]
    rhs: np.ndarray


def _mass(w: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """sum_q w_q u_qi v_qj"""
    return np.einsum("q,qi,qj->ij", w, u, v)


def _normal_derivative(dphi: np.ndarray, n: np.ndarray) -> np.ndarray:
    return np.einsum("qid,d->qi", dphi, n)


class LocalOperator:
    """
    Local weak form on one cell and its faces.

    ``volume`` returns the cell block and load vector, ``face`` the blocks of
    one face. One assembly loop drives any subclass.
    """
    symmetric: bool = False

    def __init__(self, case: CaseConfig, degree: int, eta: float = 1.0) -> None:
        if int(degree) < 1:
            raise ValueError("local operator degree must be >= 1")
        self.case = case
        self.degree = int(degree)
        self.eta = float(eta)

    @property
    def quadrature_order(self) -> int:
        return 2 * self.degree

    def volume(self, basis: ScaledMonomialBasis, qps: Quadrature) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def face(
        self,
        tbasis: ScaledMonomialBasis,
        nbasis: Optional[ScaledMonomialBasis],
        normal: np.ndarray,
        face_diam: float,
        qps: Quadrature,
    ) -> FaceBlocks:
        raise NotImplementedError


class AdvectionReactionOperator(LocalOperator):
    """
    β·∇u + μu = f with centered or upwind numerical flux.

    Interior faces use the flux coefficient β·n (centered) or
    β·n - η|β·n| (upwind). On the boundary only inflow faces (β·n < 0) carry
    a term; outflow faces contribute nothing and the boundary datum is unused
    there.
    """
    symmetric = False

    def __init__(self, case: CaseConfig, degree: int, eta: float = 1.0,
                 use_upwinding: bool = False) -> None:
        super().__init__(case, degree, eta)
        self.use_upwinding = bool(use_upwinding)

    def flux_coefficient(self, beta_n: np.ndarray) -> np.ndarray:
        if self.use_upwinding:
            return beta_n - self.eta * np.abs(beta_n)
        return beta_n

    def volume(self, basis, qps):
        x, y = qps.points[:, 0], qps.points[:, 1]
        w = qps.weights
        phi = basis.eval(qps.points)
        dphi = basis.eval_grads(qps.points)

        bx, by = self.case.beta(x, y)
        dphi_beta = dphi[..., 0] * np.asarray(bx)[:, None] + dphi[..., 1] * np.asarray(by)[:, None]

        K = _mass(w * self.case.mu(x, y), phi, phi)     # reaction
        K += _mass(w, phi, dphi_beta)                   # advection
        f = phi.T @ (w * self.case.rhs(x, y))
        return K, f

    def face(self, tbasis, nbasis, normal, face_diam, qps):
        x, y = qps.points[:, 0], qps.points[:, 1]
        w = qps.weights
        tphi = tbasis.eval(qps.points)

        bx, by = self.case.beta(x, y)
        beta_n = np.asarray(bx) * normal[0] + np.asarray(by) * normal[1]

        if nbasis is None:
            beta_minus = np.where(beta_n < 0.0, 0.5 * (np.abs(beta_n) - beta_n), 0.0)
            Att = _mass(w * beta_minus, tphi, tphi)
            rhs = tphi.T @ (w * beta_minus * self.case.boundary_value(x, y))
            return FaceBlocks(Att, None, rhs)

        assert tbasis.size() == nbasis.size()
        nphi = nbasis.eval(qps.points)
        coeff = self.flux_coefficient(beta_n)

        Att = -0.5 * _mass(w * coeff, tphi, tphi)
        Atn = +0.5 * _mass(w * coeff, tphi, nphi)
        return FaceBlocks(Att, Atn, np.zeros(tbasis.size()))


class DiffusionOperator(LocalOperator):
    """
    -∇·(ε∇u) = f with the symmetric interior penalty method; Dirichlet data
    enters weakly (Nitsche) on boundary faces.

    Face penalty: penalty_scale * eta * p² / diam(face).
    """
    symmetric = True

    def __init__(self, case: CaseConfig, degree: int, eta: float = 1.0,
                 penalty_scale: float = 3.0) -> None:
        super().__init__(case, degree, eta)
        self.penalty_scale = float(penalty_scale)

    def penalty(self, face_diam: float) -> float:
        return self.penalty_scale * self.eta * self.degree**2 / float(face_diam)

    def volume(self, basis, qps):
        x, y = qps.points[:, 0], qps.points[:, 1]
        w = qps.weights
        phi = basis.eval(qps.points)
        dphi = basis.eval_grads(qps.points)

        K = np.einsum("q,qid,qjd->ij", w * self.case.epsilon(x, y), dphi, dphi)
        f = phi.T @ (w * self.case.rhs(x, y))
        return K, f

    def face(self, tbasis, nbasis, normal, face_diam, qps):
        x, y = qps.points[:, 0], qps.points[:, 1]
        w = qps.weights
        eta_l = self.penalty(face_diam)
        we = w * self.case.epsilon(x, y)

        tphi = tbasis.eval(qps.points)
        tdn = _normal_derivative(tbasis.eval_grads(qps.points), normal)

        if nbasis is None:
            g = self.case.boundary_value(x, y)
            Att = eta_l * _mass(w, tphi, tphi) - _mass(we, tphi, tdn) - _mass(we, tdn, tphi)
            rhs = eta_l * (tphi.T @ (w * g)) - tdn.T @ (we * g)
            return FaceBlocks(Att, None, rhs)

        assert tbasis.size() == nbasis.size()
        nphi = nbasis.eval(qps.points)
        ndn = _normal_derivative(nbasis.eval_grads(qps.points), normal)

        Att = eta_l * _mass(w, tphi, tphi) - 0.5 * _mass(we, tphi, tdn) - 0.5 * _mass(we, tdn, tphi)
        Atn = -eta_l * _mass(w, tphi, nphi) - 0.5 * _mass(we, tphi, ndn) + 0.5 * _mass(we, tdn, nphi)
        return FaceBlocks(Att, Atn, np.zeros(tbasis.size()))


def make_local_operator(cfg: DGConfig, case: CaseConfig) -> LocalOperator:
    problem = ProblemType(cfg.problem)
    if problem == ProblemType.DIFFUSION:
        return DiffusionOperator(case, cfg.degree, eta=cfg.eta)
    if problem == ProblemType.ADVECTION_REACTION:
        return AdvectionReactionOperator(case, cfg.degree, eta=cfg.eta,
                                         use_upwinding=cfg.use_upwinding)
    raise ValueError(f"unknown problem type: {cfg.problem}")
