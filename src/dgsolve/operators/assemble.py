# operators/assemble.py
from __future__ import annotations

from typing import Optional

import numpy as np
import scipy.sparse as sp

from ..core.bases import make_basis, scalar_basis_size
from ..core.mesh import Mesh2D
from ..core.quadratures import integrate_cell, integrate_face
from .local import LocalOperator


class AssemblerStateError(ValueError):
    """Assembler used before initialize() or after finalize()."""


class DegenerateOperatorError(RuntimeError):
    """A Jacobi preconditioner diagonal is (numerically) zero."""


class Assembler:
    """
    Global DG system built from dense local blocks.

    Entries are collected as (row, col, value) triplets and summed when the
    CSR matrix is built in ``finalize()``. Block (i, j) of cells (a, b) lands
    at row ``offset(a) * basis_size + i`` and column ``offset(b) * basis_size + j``.

    After ``finalize()`` the system is read-only: further ``assemble_*`` or
    ``finalize`` calls raise AssemblerStateError until ``initialize()`` is
    called again.
    """

    def __init__(self, mesh: Optional[Mesh2D] = None, degree: int = 1,
                 build_pc: bool = False, pc_tol: float = 1e-12) -> None:
        self.basis_size = 0
        self.sys_size = 0
        self.build_pc = False
        self.pc_tol = float(pc_tol)
        self.finalized = False

        self._mesh: Optional[Mesh2D] = None
        self._rows: list[np.ndarray] = []
        self._cols: list[np.ndarray] = []
        self._data: list[np.ndarray] = []

        self.lhs: Optional[sp.csr_matrix] = None
        self.rhs = np.zeros(0)
        self.pc: Optional[sp.dia_matrix] = None
        self.pc_temp = np.zeros(0)

        if mesh is not None:
            self.initialize(mesh, degree, build_pc)

    def initialize(self, mesh: Mesh2D, degree: int, build_pc: bool = False) -> None:
        self._mesh = mesh
        self.basis_size = scalar_basis_size(degree, 2)
        self.sys_size = self.basis_size * mesh.num_cells
        self.build_pc = bool(build_pc)
        self.finalized = False

        self._rows, self._cols, self._data = [], [], []
        self.lhs = None
        self.rhs = np.zeros(self.sys_size)
        self.pc = None
        self.pc_temp = np.zeros(self.sys_size)

    def system_size(self) -> int:
        return self.sys_size

    @property
    def triplet_count(self) -> int:
        return int(sum(d.size for d in self._data))

    def _check_state(self) -> None:
        if self.sys_size == 0 or self.basis_size == 0 or self._mesh is None:
            raise AssemblerStateError("Assembler in invalid state: not initialized")
        if self.finalized:
            raise AssemblerStateError("Assembler in invalid state: already finalized")

    def _check_block(self, block: np.ndarray) -> np.ndarray:
        block = np.asarray(block, dtype=float)
        bs = self.basis_size
        if block.shape != (bs, bs):
            raise ValueError(f"block has shape {block.shape}, expected {(bs, bs)}")
        return block

    def _push(self, row_ofs: int, col_ofs: int, block: np.ndarray) -> None:
        bs = self.basis_size
        local = np.arange(bs)
        self._rows.append(np.repeat(row_ofs + local, bs))
        self._cols.append(np.tile(col_ofs + local, bs))
        self._data.append(block.reshape(-1).copy())

        if self.build_pc and row_ofs == col_ofs:
            self.pc_temp[row_ofs + local] += np.diag(block)

    def assemble_block(self, owner: int, other: int, block: np.ndarray) -> None:
        """Add a coupling block between cell ``owner`` (rows) and ``other`` (columns)."""
        self._check_state()
        block = self._check_block(block)

        bs = self.basis_size
        self._push(self._mesh.offset(owner) * bs, self._mesh.offset(other) * bs, block)

    def assemble_cell(self, cell: int, block: np.ndarray, load: np.ndarray) -> None:
        """Add the volume block of ``cell`` and write its rows of the right-hand side."""
        self._check_state()
        block = self._check_block(block)
        load = np.asarray(load, dtype=float)
        if load.shape != (self.basis_size,):
            raise ValueError(f"load has shape {load.shape}, expected ({self.basis_size},)")

        ofs = self._mesh.offset(cell) * self.basis_size
        self._push(ofs, ofs, block)
        self.rhs[ofs:ofs + self.basis_size] = load

    def finalize(self) -> None:
        self._check_state()
        N = self.sys_size

        pc = None
        if self.build_pc:
            d = self.pc_temp
            scale = float(np.max(np.abs(d))) if d.size else 0.0
            bad = np.flatnonzero(np.abs(d) <= self.pc_tol * scale) if scale > 0.0 else np.arange(N)
            if bad.size:
                raise DegenerateOperatorError(
                    f"{bad.size} near-zero preconditioner diagonal entries "
                    f"(first at row {int(bad[0])}, value {float(d[bad[0]]):.3e})"
                )
            pc = sp.diags(1.0 / d, format="csr")

        if self._data:
            rows = np.concatenate(self._rows)
            cols = np.concatenate(self._cols)
            data = np.concatenate(self._data)
        else:
            rows = cols = np.zeros(0, dtype=np.int64)
            data = np.zeros(0)

        self.lhs = sp.coo_matrix((data, (rows, cols)), shape=(N, N)).tocsr()
        self.lhs.sum_duplicates()
        self.pc = pc
        self._rows, self._cols, self._data = [], [], []
        self.finalized = True


def assemble_system(mesh: Mesh2D, local_op: LocalOperator, build_pc: bool = False) -> Assembler:
    """
    Single DG assembly loop: volume block per cell, T-T and T-N blocks per
    face, then finalize.
    """
    mesh.compute_connectivity()

    degree = local_op.degree
    order = local_op.quadrature_order
    assm = Assembler(mesh, degree, build_pc)

    for cell in range(mesh.num_cells):
        tbasis = make_basis(mesh, cell, degree)
        K, loc_rhs = local_op.volume(tbasis, integrate_cell(mesh, cell, order))

        for fc in mesh.faces(cell):
            ncl, has_neighbour = mesh.neighbour_via(cell, fc)
            nbasis = make_basis(mesh, ncl, degree) if has_neighbour else None

            blocks = local_op.face(
                tbasis,
                nbasis,
                mesh.normal(cell, fc),
                mesh.face_diameter(fc),
                integrate_face(mesh, fc, order),
            )

            assm.assemble_block(cell, cell, blocks.Att)
            if has_neighbour:
                assm.assemble_block(cell, ncl, blocks.Atn)
            loc_rhs = loc_rhs + blocks.rhs

        assm.assemble_cell(cell, K, loc_rhs)

    assm.finalize()
    return assm
