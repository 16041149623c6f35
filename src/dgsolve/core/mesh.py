# core/mesh.py
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .config import MeshType


class Mesh2D:
    """
    Unstructured 2D mesh of polygonal cells.

    Cells are integer handles into ``cells`` (vertex ids, counter-clockwise).
    Face k of a cell joins its local vertices k and k+1. The face tables are
    built by ``compute_connectivity()``, which must run before any face query.
    """
    mesh_type: MeshType
    vertices_per_cell: int

    def __init__(self, points: np.ndarray, cells: np.ndarray) -> None:
        points = np.asarray(points, dtype=float)
        cells = np.asarray(cells, dtype=np.int64)

        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"points has shape {points.shape}, expected (P, 2)")
        if cells.ndim != 2 or cells.shape[1] != self.vertices_per_cell:
            raise ValueError(
                f"cells has shape {cells.shape}, expected (C, {self.vertices_per_cell})"
            )
        if cells.size and (cells.min() < 0 or cells.max() >= len(points)):
            raise ValueError("cells reference vertices outside of points")

        self.points = points
        self.cells = cells

        self._face_nodes: Optional[np.ndarray] = None   # (F, 2)
        self._cell_faces: Optional[np.ndarray] = None   # (C, nv)
        self._face_cells: Optional[np.ndarray] = None   # (F, 2), -1 = none

    # ---- sizes -------------------------------------------------------

    @property
    def num_cells(self) -> int:
        return int(self.cells.shape[0])

    @property
    def num_points(self) -> int:
        return int(self.points.shape[0])

    @property
    def num_faces(self) -> int:
        self._require_connectivity()
        return int(self._face_nodes.shape[0])

    # ---- connectivity ------------------------------------------------

    @property
    def has_connectivity(self) -> bool:
        return self._face_nodes is not None

    def compute_connectivity(self) -> None:
        """Build face tables; calling it again is a no-op."""
        if self.has_connectivity:
            return

        nv = self.vertices_per_cell
        lookup: dict[Tuple[int, int], int] = {}
        face_nodes: list[Tuple[int, int]] = []
        face_cells: list[list[int]] = []
        cell_faces = np.empty((self.num_cells, nv), dtype=np.int64)

        for c, verts in enumerate(self.cells):
            for k in range(nv):
                a, b = int(verts[k]), int(verts[(k + 1) % nv])
                key = (a, b) if a < b else (b, a)
                f = lookup.get(key)
                if f is None:
                    f = len(face_nodes)
                    lookup[key] = f
                    face_nodes.append((a, b))
                    face_cells.append([c, -1])
                else:
                    if face_cells[f][1] != -1:
                        raise ValueError(f"face {key} is shared by more than two cells")
                    face_cells[f][1] = c
                cell_faces[c, k] = f

        self._face_nodes = np.asarray(face_nodes, dtype=np.int64).reshape(-1, 2)
        self._face_cells = np.asarray(face_cells, dtype=np.int64).reshape(-1, 2)
        self._cell_faces = cell_faces

    def _require_connectivity(self) -> None:
        if not self.has_connectivity:
            raise RuntimeError("Mesh connectivity not computed; call compute_connectivity() first.")

    def offset(self, cell: int) -> int:
        """Dense index of a cell in [0, num_cells)."""
        cell = int(cell)
        if cell < 0 or cell >= self.num_cells:
            raise IndexError(f"cell {cell} out of range [0, {self.num_cells})")
        return cell

    def face_offset(self, face: int) -> int:
        face = int(face)
        if face < 0 or face >= self.num_faces:
            raise IndexError(f"face {face} out of range [0, {self.num_faces})")
        return face

    def faces(self, cell: int) -> np.ndarray:
        self._require_connectivity()
        return self._cell_faces[self.offset(cell)]

    def face_cells(self, face: int) -> Tuple[int, int]:
        self._require_connectivity()
        a, b = self._face_cells[self.face_offset(face)]
        return int(a), int(b)

    def is_boundary(self, face: int) -> bool:
        return self.face_cells(face)[1] < 0

    def boundary_faces(self) -> np.ndarray:
        self._require_connectivity()
        return np.flatnonzero(self._face_cells[:, 1] < 0)

    def neighbour_via(self, cell: int, face: int) -> Tuple[Optional[int], bool]:
        """Cell across ``face`` from ``cell``, or (None, False) on the boundary."""
        a, b = self.face_cells(face)
        cell = int(cell)
        if cell == a:
            other = b
        elif cell == b:
            other = a
        else:
            raise ValueError(f"face {face} does not belong to cell {cell}")
        if other < 0:
            return None, False
        return other, True

    # ---- geometry ----------------------------------------------------

    def cell_vertices(self, cell: int) -> np.ndarray:
        return self.points[self.cells[self.offset(cell)]]

    def face_vertices(self, face: int) -> np.ndarray:
        self._require_connectivity()
        return self.points[self._face_nodes[self.face_offset(face)]]

    def barycenter(self, cell: int) -> np.ndarray:
        return self.cell_vertices(cell).mean(axis=0)

    def measure(self, cell: int) -> float:
        """Cell area (shoelace formula)."""
        v = self.cell_vertices(cell)
        x, y = v[:, 0], v[:, 1]
        return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))

    def diameter(self, cell: int) -> float:
        v = self.cell_vertices(cell)
        d = v[:, None, :] - v[None, :, :]
        return float(np.sqrt((d**2).sum(axis=-1)).max())

    def face_diameter(self, face: int) -> float:
        a, b = self.face_vertices(face)
        return float(np.linalg.norm(b - a))

    def mesh_diameter(self) -> float:
        """Characteristic mesh size h: the largest cell diameter."""
        return max(self.diameter(c) for c in range(self.num_cells))

    def normal(self, cell: int, face: int) -> np.ndarray:
        """Outward unit normal of ``face`` with respect to ``cell``."""
        a, b = self.face_vertices(face)
        t = b - a
        n = np.array([t[1], -t[0]]) / np.linalg.norm(t)
        if np.dot(n, 0.5 * (a + b) - self.barycenter(cell)) < 0.0:
            n = -n
        return n

    # ---- reference map -----------------------------------------------

    def map_reference(self, cell: int, xi: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def jacobian_det(self, cell: int, xi: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def reference_lattice(self, n: int) -> np.ndarray:
        raise NotImplementedError


class SimplicialMesh(Mesh2D):
    """Triangles, reference cell {(ξ, η): ξ, η >= 0, ξ + η <= 1}."""
    mesh_type = MeshType.TRIANGULAR
    vertices_per_cell = 3

    def map_reference(self, cell: int, xi: np.ndarray) -> np.ndarray:
        v0, v1, v2 = self.cell_vertices(cell)
        xi = np.atleast_2d(xi)
        return v0 + np.outer(xi[:, 0], v1 - v0) + np.outer(xi[:, 1], v2 - v0)

    def jacobian_det(self, cell: int, xi: np.ndarray) -> np.ndarray:
        v0, v1, v2 = self.cell_vertices(cell)
        e1, e2 = v1 - v0, v2 - v0
        det = abs(e1[0] * e2[1] - e1[1] * e2[0])
        return np.full(np.atleast_2d(xi).shape[0], det)

    def reference_lattice(self, n: int) -> np.ndarray:
        s = np.linspace(0.0, 1.0, n + 1)
        return np.array([(a, b) for i, a in enumerate(s) for b in s[: n + 1 - i]])


class QuadMesh(Mesh2D):
    """Quadrilaterals, bilinear map from the reference square [0, 1]²."""
    mesh_type = MeshType.QUADRANGULAR
    vertices_per_cell = 4

    @staticmethod
    def _shape(xi: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        s, t = xi[:, 0], xi[:, 1]
        N = np.stack([(1 - s) * (1 - t), s * (1 - t), s * t, (1 - s) * t], axis=1)
        dNds = np.stack([-(1 - t), (1 - t), t, -t], axis=1)
        dNdt = np.stack([-(1 - s), -s, s, (1 - s)], axis=1)
        return N, dNds, dNdt

    def map_reference(self, cell: int, xi: np.ndarray) -> np.ndarray:
        N, _, _ = self._shape(np.atleast_2d(xi))
        return N @ self.cell_vertices(cell)

    def jacobian_det(self, cell: int, xi: np.ndarray) -> np.ndarray:
        v = self.cell_vertices(cell)
        _, dNds, dNdt = self._shape(np.atleast_2d(xi))
        dxds, dxdt = dNds @ v, dNdt @ v
        return np.abs(dxds[:, 0] * dxdt[:, 1] - dxds[:, 1] * dxdt[:, 0])

    def reference_lattice(self, n: int) -> np.ndarray:
        s = np.linspace(0.0, 1.0, n + 1)
        S, T = np.meshgrid(s, s, indexing="ij")
        return np.stack([S.ravel(), T.ravel()], axis=1)


def make_test_points(mesh: Mesh2D, cell: int, n: int) -> np.ndarray:
    """Lattice of (n + 1) points per reference edge, mapped into ``cell``."""
    if int(n) < 1:
        raise ValueError("make_test_points requires n >= 1")
    return mesh.map_reference(cell, mesh.reference_lattice(int(n)))


def shatter_mesh(mesh: Mesh2D, factor: float = 0.2) -> np.ndarray:
    """
    Per-cell vertex coordinates (C, nv, 2) shrunk toward each barycenter by
    ``factor``. Only meant for plotting discontinuous fields.
    """
    factor = float(factor)
    if not 0.0 <= factor < 1.0:
        raise ValueError("shatter factor must be in [0, 1)")
    verts = mesh.points[mesh.cells]
    bary = verts.mean(axis=1, keepdims=True)
    return bary + (1.0 - factor) * (verts - bary)
