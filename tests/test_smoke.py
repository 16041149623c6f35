import numpy as np

from dgsolve.core.config import DGConfig, ProblemType
from dgsolve.core.cases import make_default_cases
from dgsolve.core.meshers import make_triangle_mesh, make_quad_mesh
from dgsolve.core.bases import scalar_basis_size
from dgsolve.operators.local import make_local_operator
from dgsolve.operators.assemble import assemble_system


def test_assemble():
    mesh = make_triangle_mesh(1)
    cfg = DGConfig(degree=1, problem=ProblemType.DIFFUSION)
    case = make_default_cases()["diffusion"]
    assm = assemble_system(mesh, make_local_operator(cfg, case))
    assert assm.lhs.shape[0] == scalar_basis_size(1) * mesh.num_cells


def test_assemble_quads_degree_two():
    mesh = make_quad_mesh(1)
    cfg = DGConfig(degree=2, problem=ProblemType.ADVECTION_REACTION, use_upwinding=True)
    case = make_default_cases()["advection_reaction"]
    assm = assemble_system(mesh, make_local_operator(cfg, case), build_pc=True)
    N = 6 * mesh.num_cells
    assert assm.lhs.shape == (N, N)
    assert assm.rhs.shape == (N,)
    assert np.all(np.isfinite(assm.lhs.data))
    assert assm.pc is not None
