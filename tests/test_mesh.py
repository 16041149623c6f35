import numpy as np
import pytest

from dgsolve.core.config import MeshType
from dgsolve.core.mesh import SimplicialMesh, make_test_points, shatter_mesh
from dgsolve.core.meshers import create_mesh, make_quad_mesh, make_triangle_mesh


def test_triangle_mesh_counts_and_area():
    mesh = make_triangle_mesh(0)
    mesh.compute_connectivity()
    assert mesh.num_cells == 4
    assert mesh.num_points == 5
    assert mesh.num_faces == 8
    assert len(mesh.boundary_faces()) == 4

    fine = make_triangle_mesh(2)
    assert fine.num_cells == 4 * 4**2
    areas = np.array([fine.measure(c) for c in range(fine.num_cells)])
    assert np.all(areas > 0.0)
    assert np.isclose(areas.sum(), 1.0)


def test_quad_mesh_counts():
    mesh = make_quad_mesh(2)
    mesh.compute_connectivity()
    assert mesh.num_cells == 16
    assert mesh.num_faces == 40
    assert len(mesh.boundary_faces()) == 16
    assert np.isclose(sum(mesh.measure(c) for c in range(mesh.num_cells)), 1.0)


@pytest.mark.parametrize("mesh_type", [MeshType.TRIANGULAR, MeshType.QUADRANGULAR])
def test_normals_are_outward_and_opposite(mesh_type):
    mesh = create_mesh(mesh_type, 2)
    mesh.compute_connectivity()

    for cell in range(mesh.num_cells):
        bary = mesh.barycenter(cell)
        for fc in mesh.faces(cell):
            n = mesh.normal(cell, fc)
            mid = mesh.face_vertices(fc).mean(axis=0)
            assert np.isclose(np.linalg.norm(n), 1.0)
            assert np.dot(n, mid - bary) > 0.0

            ncl, has_neighbour = mesh.neighbour_via(cell, fc)
            if has_neighbour:
                assert np.allclose(mesh.normal(ncl, fc), -n)
                assert mesh.neighbour_via(ncl, fc) == (cell, True)
            else:
                assert ncl is None
                assert mesh.is_boundary(fc)


def test_offsets_are_a_permutation():
    mesh = make_triangle_mesh(1)
    offsets = sorted(mesh.offset(c) for c in range(mesh.num_cells))
    assert offsets == list(range(mesh.num_cells))
    with pytest.raises(IndexError):
        mesh.offset(mesh.num_cells)


def test_connectivity_required_and_idempotent():
    mesh = make_triangle_mesh(1)
    with pytest.raises(RuntimeError):
        mesh.faces(0)
    mesh.compute_connectivity()
    nf = mesh.num_faces
    mesh.compute_connectivity()
    assert mesh.num_faces == nf


def test_mesh_diameter_halves_with_refinement():
    h = [make_triangle_mesh(r).mesh_diameter() for r in range(3)]
    assert np.allclose(h, [1.0, 0.5, 0.25])
    assert np.isclose(make_quad_mesh(2).mesh_diameter(), np.sqrt(2.0) / 4.0)


def test_bad_mesh_requests():
    with pytest.raises(ValueError):
        make_triangle_mesh(-1)
    with pytest.raises(NotImplementedError):
        create_mesh(MeshType.TETRAHEDRAL, 1)
    with pytest.raises(NotImplementedError):
        create_mesh(MeshType.HEXAHEDRAL, 1)
    with pytest.raises(ValueError):
        SimplicialMesh(np.zeros((3, 2)), np.array([[0, 1, 3]]))


def test_test_points_and_shatter():
    mesh = make_quad_mesh(1)
    tps = make_test_points(mesh, 0, 4)
    assert tps.shape == (25, 2)
    v = mesh.cell_vertices(0)
    assert np.all(tps >= v.min(axis=0) - 1e-14)
    assert np.all(tps <= v.max(axis=0) + 1e-14)

    tri = make_triangle_mesh(0)
    assert make_test_points(tri, 0, 3).shape == (10, 2)

    polys = shatter_mesh(tri, 0.2)
    assert polys.shape == (4, 3, 2)
    assert np.allclose(polys.mean(axis=1), tri.points[tri.cells].mean(axis=1))
    with pytest.raises(ValueError):
        shatter_mesh(tri, 1.5)
