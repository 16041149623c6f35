from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np
import scipy.linalg as sla

from ..core.bases import make_basis, scalar_basis_size
from ..core.mesh import Mesh2D, make_test_points
from ..core.quadratures import integrate_cell


@dataclass
class SolverStatus:
    """Summary of one solve; the error fields are squared L2 sums."""
    mesh_h: float
    L2_errsq_qp: float = 0.0
    L2_errsq_mm: float = 0.0
    iterations: int = 0
    converged: bool = False
    rel_residual: float = float("nan")

    @property
    def L2_error_qp(self) -> float:
        return float(np.sqrt(self.L2_errsq_qp))

    @property
    def L2_error_mm(self) -> float:
        return float(np.sqrt(self.L2_errsq_mm))

    def __str__(self) -> str:
        return (
            "Convergence results: \n"
            f"  mesh size (h):         {self.mesh_h:g}\n"
            f"  L2-norm error (qp):    {self.L2_error_qp:g}\n"
            f"  L2-norm error (mm):    {self.L2_error_mm:g}\n"
            f"  ||b - Ax|| / ||b||:    {self.rel_residual:g}"
        )


def local_solution(sol: np.ndarray, offset: int, basis_size: int) -> np.ndarray:
    """Coefficients of the cell with dense index ``offset``."""
    start = int(offset) * int(basis_size)
    return sol[start:start + basis_size]


def compute_errors(
    mesh: Mesh2D,
    sol: np.ndarray,
    degree: int,
    ref_sol: Callable[[np.ndarray, np.ndarray], np.ndarray],
) -> Tuple[float, float]:
    """
    Squared L2 errors of the DG solution ``sol`` against ``ref_sol``.

    qp: sum over cell quadrature points of w (u - u_h)^2
    mm: sum over cells of (p - u_h)^T M (p - u_h), p the L2 projection
        of u on the cell basis (M p = a, M the local mass matrix).
    """
    bs = scalar_basis_size(degree, 2)
    if sol.shape != (bs * mesh.num_cells,):
        raise ValueError(f"sol has shape {sol.shape}, expected ({bs * mesh.num_cells},)")

    order = 2 * int(degree)
    errsq_qp = 0.0
    errsq_mm = 0.0

    for cl in range(mesh.num_cells):
        basis = make_basis(mesh, cl, degree)
        loc_sol = local_solution(sol, mesh.offset(cl), bs)

        qps = integrate_cell(mesh, cl, order)
        w = qps.weights
        phi = basis.eval(qps.points)
        sv = np.asarray(ref_sol(qps.points[:, 0], qps.points[:, 1]), dtype=float)

        M = np.einsum("q,qi,qj->ij", w, phi, phi)
        a = phi.T @ (w * sv)

        cv = phi @ loc_sol
        errsq_qp += float(np.dot(w, (sv - cv) ** 2))

        proj = sla.lu_solve(sla.lu_factor(M), a)
        diff = proj - loc_sol
        errsq_mm += float(diff @ M @ diff)

    return errsq_qp, errsq_mm


def cell_values(mesh: Mesh2D, sol: np.ndarray, degree: int) -> np.ndarray:
    """One value per cell: the leading (constant-mode) coefficient."""
    bs = scalar_basis_size(degree, 2)
    return np.array([sol[bs * mesh.offset(c)] for c in range(mesh.num_cells)])


def evaluate_solution(mesh: Mesh2D, sol: np.ndarray, degree: int, n: int = 6) -> np.ndarray:
    """
    Sample the discrete solution on a lattice of test points in every cell.

    Returns (M, 3) rows of x, y, u_h(x, y).
    """
    bs = scalar_basis_size(degree, 2)
    rows = []
    for cl in range(mesh.num_cells):
        basis = make_basis(mesh, cl, degree)
        tps = make_test_points(mesh, cl, n)
        vals = basis.eval(tps) @ local_solution(sol, mesh.offset(cl), bs)
        rows.append(np.column_stack([tps, vals]))
    return np.vstack(rows) if rows else np.zeros((0, 3))
