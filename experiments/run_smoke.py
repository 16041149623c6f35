import numpy as np

from dgsolve.core.config import DGConfig, ProblemType
from dgsolve.core.meshers import make_triangle_mesh
from dgsolve.operators.local import make_local_operator
from dgsolve.operators.assemble import assemble_system
from dgsolve.core.cases import make_default_cases



def test_assemble_shape():
    mesh = make_triangle_mesh(2)
    cfg = DGConfig(degree=1, problem=ProblemType.DIFFUSION)
    case = make_default_cases()["diffusion"]
    assm = assemble_system(mesh, make_local_operator(cfg, case))
    N = 3 * mesh.num_cells
    assert assm.lhs.shape == (N, N)
    assert np.all(np.isfinite(assm.lhs.data))
