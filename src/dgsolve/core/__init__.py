"""
Core: problem definition (configs, cases) and the discretization
collaborators (meshes, quadratures, bases).
"""

from .config import CaseConfig, DGConfig, MeshType, ProblemType
from .cases import make_default_cases, make_diffusion_case, make_advection_reaction_case
from .mesh import Mesh2D, SimplicialMesh, QuadMesh, make_test_points, shatter_mesh
from .meshers import create_mesh, make_triangle_mesh, make_quad_mesh
from .quadratures import Quadrature, QuadraturePoint, integrate, integrate_cell, integrate_face
from .bases import ScaledMonomialBasis, make_basis, scalar_basis_size

__all__ = [
    "CaseConfig",
    "DGConfig",
    "MeshType",
    "ProblemType",
    "make_default_cases",
    "make_diffusion_case",
    "make_advection_reaction_case",
    "Mesh2D",
    "SimplicialMesh",
    "QuadMesh",
    "make_test_points",
    "shatter_mesh",
    "create_mesh",
    "make_triangle_mesh",
    "make_quad_mesh",
    "Quadrature",
    "QuadraturePoint",
    "integrate",
    "integrate_cell",
    "integrate_face",
    "ScaledMonomialBasis",
    "make_basis",
    "scalar_basis_size",
]
