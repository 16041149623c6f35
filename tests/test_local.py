from dataclasses import replace

import numpy as np
import pytest

from dgsolve.core.bases import make_basis
from dgsolve.core.cases import make_advection_reaction_case, make_diffusion_case
from dgsolve.core.config import DGConfig, ProblemType
from dgsolve.core.mesh import SimplicialMesh
from dgsolve.core.meshers import make_triangle_mesh
from dgsolve.core.quadratures import integrate_face
from dgsolve.operators.assemble import assemble_system
from dgsolve.operators.local import (
    AdvectionReactionOperator,
    DiffusionOperator,
    make_local_operator,
)


def single_triangle() -> SimplicialMesh:
    mesh = SimplicialMesh(np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]), np.array([[0, 1, 2]]))
    mesh.compute_connectivity()
    return mesh


def face_blocks(mesh, op, cell, fc):
    tbasis = make_basis(mesh, cell, op.degree)
    return op.face(tbasis, None, mesh.normal(cell, fc), mesh.face_diameter(fc),
                   integrate_face(mesh, fc, op.quadrature_order))


def test_pure_outflow_boundary_contributes_nothing():
    mesh = single_triangle()
    xb, yb = mesh.barycenter(0)

    def radial(x, y):
        return x - xb, y - yb

    case = replace(make_advection_reaction_case(), beta=radial)
    for upwind in (False, True):
        op = AdvectionReactionOperator(case, degree=2, use_upwinding=upwind)
        for fc in mesh.faces(0):
            blocks = face_blocks(mesh, op, 0, fc)
            assert blocks.Atn is None
            assert np.all(blocks.Att == 0.0)
            assert np.all(blocks.rhs == 0.0)


def test_inflow_boundary_adds_weighted_mass():
    mesh = single_triangle()
    op = AdvectionReactionOperator(make_advection_reaction_case(), degree=1)

    inflow = [fc for fc in mesh.faces(0) if mesh.normal(0, fc)[0] < -0.5]
    assert len(inflow) == 1
    blocks = face_blocks(mesh, op, 0, inflow[0])

    # |beta.n| = 1 on the x = 0 edge of length 1, constant mode squared = 1
    assert np.isclose(blocks.Att[0, 0], 1.0)
    assert np.allclose(blocks.Att, blocks.Att.T)
    assert np.all(np.linalg.eigvalsh(blocks.Att) >= -1e-14)
    # u = sin(pi x) vanishes on x = 0
    assert np.allclose(blocks.rhs, 0.0)


def test_flux_coefficient():
    case = make_advection_reaction_case()
    bn = np.array([2.0, -2.0, 0.0])
    centered = AdvectionReactionOperator(case, 1, eta=1.0, use_upwinding=False)
    upwind = AdvectionReactionOperator(case, 1, eta=1.0, use_upwinding=True)
    assert np.allclose(centered.flux_coefficient(bn), bn)
    assert np.allclose(upwind.flux_coefficient(bn), [0.0, -4.0, 0.0])


def test_diffusion_operator_is_symmetric():
    mesh = make_triangle_mesh(1)
    op = DiffusionOperator(make_diffusion_case(), degree=2, eta=3.0)
    A = assemble_system(mesh, op).lhs.toarray()
    assert np.allclose(A, A.T, atol=1e-10)
    assert np.linalg.eigvalsh(A).min() > 0.0


def test_advection_operator_is_not_symmetric():
    mesh = make_triangle_mesh(1)
    op = AdvectionReactionOperator(make_advection_reaction_case(), degree=1)
    A = assemble_system(mesh, op).lhs.toarray()
    assert not np.allclose(A, A.T)
    # centered flux: symmetric part is mu*M plus boundary terms, so positive definite
    assert np.linalg.eigvalsh(0.5 * (A + A.T)).min() > 0.0


def test_penalty_scaling():
    op = DiffusionOperator(make_diffusion_case(), degree=2, eta=1.5)
    assert np.isclose(op.penalty(0.5), 3.0 * 1.5 * 4 / 0.5)
    assert op.quadrature_order == 4


def test_make_local_operator_selects_strategy():
    diff = make_local_operator(DGConfig(problem=ProblemType.DIFFUSION), make_diffusion_case())
    adv = make_local_operator(DGConfig(use_upwinding=True), make_advection_reaction_case())
    assert isinstance(diff, DiffusionOperator) and diff.symmetric
    assert isinstance(adv, AdvectionReactionOperator) and adv.use_upwinding
    with pytest.raises(ValueError):
        DiffusionOperator(make_diffusion_case(), degree=0)
