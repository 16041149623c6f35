# core/quadratures.py
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, NamedTuple, Tuple

import numpy as np

from .mesh import Mesh2D, QuadMesh, SimplicialMesh


class QuadraturePoint(NamedTuple):
    point: np.ndarray
    weight: float


@dataclass(frozen=True)
class Quadrature:
    """
    Physical quadrature rule: points (nq, 2), weights (nq,) including the
    Jacobian. Iterating yields (point, weight) pairs and can be repeated.
    """
    points: np.ndarray
    weights: np.ndarray

    def __iter__(self) -> Iterator[QuadraturePoint]:
        for p, w in zip(self.points, self.weights):
            yield QuadraturePoint(p, float(w))

    def __len__(self) -> int:
        return int(self.weights.shape[0])

    def integrate(self, values: np.ndarray) -> float:
        return float(np.dot(self.weights, values))


def _check_order(order: int) -> int:
    order = int(order)
    if order < 0:
        raise ValueError("quadrature order must be >= 0")
    return order


@lru_cache(maxsize=None)
def gauss_legendre_01(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """n-point Gauss-Legendre rule on [0, 1] (exact to degree 2n - 1)."""
    x, w = np.polynomial.legendre.leggauss(int(n))
    return 0.5 * (x + 1.0), 0.5 * w


@lru_cache(maxsize=None)
def reference_triangle_rule(order: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Collapsed (Duffy) Gauss rule on the reference triangle:
        ξ = u, η = v (1 - u), dξ dη = (1 - u) du dv
    """
    n = order // 2 + 2
    x, w = gauss_legendre_01(n)
    U, V = np.meshgrid(x, x, indexing="ij")
    WU, WV = np.meshgrid(w, w, indexing="ij")
    xi = np.stack([U.ravel(), (V * (1.0 - U)).ravel()], axis=1)
    wts = (WU * WV * (1.0 - U)).ravel()
    return xi, wts


@lru_cache(maxsize=None)
def reference_square_rule(order: int) -> Tuple[np.ndarray, np.ndarray]:
    # one extra point per direction covers the bilinear Jacobian
    n = order // 2 + 2
    x, w = gauss_legendre_01(n)
    S, T = np.meshgrid(x, x, indexing="ij")
    WS, WT = np.meshgrid(w, w, indexing="ij")
    return np.stack([S.ravel(), T.ravel()], axis=1), (WS * WT).ravel()


def integrate_cell(mesh: Mesh2D, cell: int, order: int) -> Quadrature:
    order = _check_order(order)
    if isinstance(mesh, SimplicialMesh):
        xi, w = reference_triangle_rule(order)
    elif isinstance(mesh, QuadMesh):
        xi, w = reference_square_rule(order)
    else:
        raise NotImplementedError(f"no cell quadrature for {type(mesh).__name__}")

    points = mesh.map_reference(cell, xi)
    weights = w * mesh.jacobian_det(cell, xi)
    return Quadrature(points=points, weights=weights)


def integrate_face(mesh: Mesh2D, face: int, order: int) -> Quadrature:
    order = _check_order(order)
    t, w = gauss_legendre_01(order // 2 + 1)
    a, b = mesh.face_vertices(face)
    points = a + np.outer(t, b - a)
    weights = w * float(np.linalg.norm(b - a))
    return Quadrature(points=points, weights=weights)


def integrate(mesh: Mesh2D, entity: Tuple[str, int], order: int) -> Quadrature:
    """
    Quadrature for ``("cell", i)`` or ``("face", i)`` exact for polynomials of
    degree ``order``.
    """
    kind, index = entity
    if kind == "cell":
        return integrate_cell(mesh, index, order)
    if kind == "face":
        return integrate_face(mesh, index, order)
    raise ValueError(f"unknown entity kind '{kind}' (use 'cell' or 'face')")
