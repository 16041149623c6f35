import numpy as np
import pytest

from dgsolve.algorithm.postprocess import (
    SolverStatus,
    cell_values,
    compute_errors,
    evaluate_solution,
    local_solution,
)
from dgsolve.core.bases import make_basis
from dgsolve.core.meshers import make_quad_mesh, make_triangle_mesh


def linear(x, y):
    return 1.0 + 2.0 * x - y


def interpolate_linear(mesh):
    """Exact P1 coefficients of ``linear`` in every cell's scaled monomial basis."""
    coeffs = []
    for c in range(mesh.num_cells):
        basis = make_basis(mesh, c, 1)
        xb, yb = basis.center
        coeffs.append([linear(xb, yb), 2.0 * basis.h, -basis.h])
    return np.asarray(coeffs).reshape(-1)


@pytest.mark.parametrize("make_mesh", [make_triangle_mesh, make_quad_mesh])
def test_errors_vanish_for_representable_solution(make_mesh):
    mesh = make_mesh(2)
    sol = interpolate_linear(mesh)
    errsq_qp, errsq_mm = compute_errors(mesh, sol, 1, linear)
    assert errsq_qp < 1e-24
    assert errsq_mm < 1e-24


def test_constant_shift_gives_area_weighted_error():
    mesh = make_triangle_mesh(2)
    sol = interpolate_linear(mesh)
    sol[::3] += 0.1
    errsq_qp, errsq_mm = compute_errors(mesh, sol, 1, linear)
    assert np.isclose(errsq_qp, 0.01)
    assert np.isclose(errsq_mm, 0.01)


def test_errors_reject_wrong_vector_length():
    mesh = make_triangle_mesh(0)
    with pytest.raises(ValueError):
        compute_errors(mesh, np.zeros(5), 1, linear)


def test_local_solution_and_cell_values():
    sol = np.arange(12.0)
    assert np.array_equal(local_solution(sol, 2, 3), [6.0, 7.0, 8.0])
    mesh = make_triangle_mesh(0)
    assert np.array_equal(cell_values(mesh, sol, 1), [0.0, 3.0, 6.0, 9.0])


def test_evaluate_solution_matches_reference():
    mesh = make_quad_mesh(1)
    samples = evaluate_solution(mesh, interpolate_linear(mesh), 1, n=3)
    assert samples.shape == (mesh.num_cells * 16, 3)
    assert np.allclose(samples[:, 2], linear(samples[:, 0], samples[:, 1]))


def test_status_report():
    status = SolverStatus(mesh_h=0.25, L2_errsq_qp=4e-6, L2_errsq_mm=9e-6)
    assert np.isclose(status.L2_error_qp, 2e-3)
    assert np.isclose(status.L2_error_mm, 3e-3)
    text = str(status)
    assert text.startswith("Convergence results:")
    assert "0.002" in text and "0.003" in text
