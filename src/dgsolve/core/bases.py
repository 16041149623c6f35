# core/bases.py
from __future__ import annotations

from math import comb

import numpy as np

from .mesh import Mesh2D


def scalar_basis_size(degree: int, dim: int = 2) -> int:
    """Dimension of the full polynomial space P_degree in ``dim`` variables."""
    degree, dim = int(degree), int(dim)
    if degree < 0 or dim < 1:
        raise ValueError("scalar_basis_size requires degree >= 0 and dim >= 1")
    return comb(degree + dim, dim)


def monomial_exponents(degree: int) -> np.ndarray:
    """(n, 2) exponents (a, b), ordered by total degree, constant first."""
    return np.array([(a, k - a) for k in range(degree + 1) for a in range(k, -1, -1)], dtype=np.int64)


class ScaledMonomialBasis:
    """
    P_k basis of scaled monomials on one cell:
        φ_ab(x, y) = ((x - xb) / h)^a ((y - yb) / h)^b,   a + b <= k
    centred at the cell barycenter and scaled by the cell diameter.
    """

    def __init__(self, center: np.ndarray, h: float, degree: int) -> None:
        if int(degree) < 0:
            raise ValueError("basis degree must be >= 0")
        if float(h) <= 0.0:
            raise ValueError("basis scaling h must be positive")
        self.center = np.asarray(center, dtype=float)
        self.h = float(h)
        self.degree = int(degree)
        self.exponents = monomial_exponents(self.degree)

    def size(self) -> int:
        return int(self.exponents.shape[0])

    def _scaled(self, pts: np.ndarray):
        pts = np.asarray(pts, dtype=float)
        single = pts.ndim == 1
        pts = np.atleast_2d(pts)
        X = (pts[:, 0:1] - self.center[0]) / self.h
        Y = (pts[:, 1:2] - self.center[1]) / self.h
        return X, Y, single

    def eval(self, pts: np.ndarray) -> np.ndarray:
        """Values at points: (n,) for one point, (nq, n) for an array of points."""
        X, Y, single = self._scaled(pts)
        a, b = self.exponents[:, 0], self.exponents[:, 1]
        phi = X**a * Y**b
        return phi[0] if single else phi

    def eval_grads(self, pts: np.ndarray) -> np.ndarray:
        """Gradients at points: (n, 2) for one point, (nq, n, 2) otherwise."""
        X, Y, single = self._scaled(pts)
        a, b = self.exponents[:, 0], self.exponents[:, 1]
        dx = a * X ** np.maximum(a - 1, 0) * Y**b / self.h
        dy = b * X**a * Y ** np.maximum(b - 1, 0) / self.h
        dphi = np.stack([dx, dy], axis=-1)
        return dphi[0] if single else dphi


def make_basis(mesh: Mesh2D, cell: int, degree: int) -> ScaledMonomialBasis:
    return ScaledMonomialBasis(mesh.barycenter(cell), mesh.diameter(cell), degree)
