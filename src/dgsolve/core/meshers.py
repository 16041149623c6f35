# core/meshers.py
from __future__ import annotations

from typing import Tuple

import numpy as np

from .config import MeshType
from .mesh import Mesh2D, QuadMesh, SimplicialMesh


def idx(i: int, j: int, ny: int) -> int:
    return i * ny + j


def _check_levels(ref_levels: int) -> int:
    ref_levels = int(ref_levels)
    if ref_levels < 0:
        raise ValueError("ref_levels must be >= 0")
    return ref_levels


def refine_triangles(points: np.ndarray, cells: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Uniform 1 -> 4 split of every triangle through its edge midpoints.
    Midpoints of shared edges are created once; orientation is preserved.
    """
    pts = [tuple(p) for p in points]
    midpoints: dict[Tuple[int, int], int] = {}

    def mid(a: int, b: int) -> int:
        key = (a, b) if a < b else (b, a)
        m = midpoints.get(key)
        if m is None:
            m = len(pts)
            pa, pb = points[a], points[b]
            pts.append((0.5 * (pa[0] + pb[0]), 0.5 * (pa[1] + pb[1])))
            midpoints[key] = m
        return m

    new_cells = []
    for a, b, c in cells:
        ab, bc, ca = mid(a, b), mid(b, c), mid(c, a)
        new_cells.extend([(a, ab, ca), (ab, b, bc), (ca, bc, c), (ab, bc, ca)])

    return np.asarray(pts, dtype=float), np.asarray(new_cells, dtype=np.int64)


def make_triangle_mesh(ref_levels: int = 0) -> SimplicialMesh:
    """Unit square cut in four triangles around its center, refined ``ref_levels`` times."""
    ref_levels = _check_levels(ref_levels)

    points = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.5, 0.5]])
    cells = np.array([[0, 1, 4], [1, 2, 4], [2, 3, 4], [3, 0, 4]], dtype=np.int64)

    for _ in range(ref_levels):
        points, cells = refine_triangles(points, cells)

    return SimplicialMesh(points, cells)


def make_quad_mesh(ref_levels: int = 0, lx: float = 1.0, ly: float = 1.0) -> QuadMesh:
    """Uniform 2^r x 2^r quadrilateral mesh of [0, lx] x [0, ly]."""
    ref_levels = _check_levels(ref_levels)
    if float(lx) <= 0.0 or float(ly) <= 0.0:
        raise ValueError("make_quad_mesh requires lx, ly > 0.")

    n = 2**ref_levels
    x = np.linspace(0.0, lx, n + 1)
    y = np.linspace(0.0, ly, n + 1)
    X, Y = np.meshgrid(x, y, indexing="ij")
    points = np.stack([X.ravel(), Y.ravel()], axis=1)

    cells = [
        (idx(i, j, n + 1), idx(i + 1, j, n + 1), idx(i + 1, j + 1, n + 1), idx(i, j + 1, n + 1))
        for i in range(n)
        for j in range(n)
    ]
    return QuadMesh(points, np.asarray(cells, dtype=np.int64))


def create_mesh(mesh_type: MeshType, ref_levels: int) -> Mesh2D:
    mesh_type = MeshType(mesh_type)
    if mesh_type == MeshType.TRIANGULAR:
        return make_triangle_mesh(ref_levels)
    if mesh_type == MeshType.QUADRANGULAR:
        return make_quad_mesh(ref_levels)
    raise NotImplementedError("Only triangular and quadrangular meshes for now")
