import numpy as np

from dgsolve.algorithm.run import run_dg
from dgsolve.cli import config_from_args, get_parser, main
from dgsolve.core.cases import make_default_cases
from dgsolve.core.config import DGConfig, MeshType, ProblemType
from dgsolve.core.meshers import make_triangle_mesh
from dgsolve.diagnostics import export_fields, plot_solution, write_gnuplot


def test_cli_runs_diffusion(capsys):
    assert main(["-r", "1", "-k", "1", "-e", "3", "--problem", "diffusion", "-p"]) == 0
    out = capsys.readouterr().out
    assert "Running dG diffusion solver" in out
    assert "Convergence results:" in out


def test_cli_convergence_table(capsys):
    assert main(["-m", "quad", "-u", "--levels", "1", "2"]) == 0
    out = capsys.readouterr().out
    assert "L2 (mm)" in out


def test_cli_rejects_3d_meshes(capsys):
    assert main(["-m", "tet", "-r", "1"]) == 1
    assert "Only triangular and quadrangular meshes" in capsys.readouterr().out


def test_cli_falls_back_on_bad_values(capsys):
    args = get_parser().parse_args(["-k", "0", "-r", "-2", "-m", "quad", "-u"])
    cfg = config_from_args(args)
    assert cfg.degree == 1
    assert cfg.ref_levels == 1
    assert cfg.mesh_type == MeshType.QUADRANGULAR
    assert cfg.use_upwinding
    assert cfg.problem == ProblemType.ADVECTION_REACTION
    assert "Falling back to 1" in capsys.readouterr().out


def test_export_and_plots(tmp_path):
    mesh = make_triangle_mesh(1)
    case = make_default_cases()["advection_reaction"]
    sol = np.linspace(0.0, 1.0, 3 * mesh.num_cells)

    assert export_fields(tmp_path / "fields.npz", mesh, sol, 1, case)
    data = np.load(tmp_path / "fields.npz")
    assert data["solution"].shape == (mesh.num_cells,)
    assert np.allclose(data["solution"], sol[::3])
    for name in ("mu", "epsilon", "beta_x", "beta_y"):
        assert data[name].shape == (mesh.num_points,)
    assert np.allclose(data["beta_x"], 1.0)

    assert write_gnuplot(tmp_path / "sol.txt", mesh, sol, 1, n=2)
    lines = np.loadtxt(tmp_path / "sol.txt")
    assert lines.shape == (mesh.num_cells * 6, 3)

    assert plot_solution(mesh, sol, 1, path=tmp_path / "figs" / "sol.png", shatter=0.2)
    assert (tmp_path / "figs" / "sol.png").exists()


def test_export_failure_is_reported_not_raised(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    mesh = make_triangle_mesh(0)
    case = make_default_cases()["diffusion"]
    sol = np.zeros(3 * mesh.num_cells)

    assert not export_fields(blocker / "fields.npz", mesh, sol, 1, case)
    assert not write_gnuplot(blocker / "sol.txt", mesh, sol, 1)
    assert "Error" in capsys.readouterr().out


def test_run_with_outdir(tmp_path):
    mesh = make_triangle_mesh(1)
    cfg = DGConfig(eta=3.0, problem=ProblemType.DIFFUSION, shatter=True)
    status, _ = run_dg(mesh, cfg, outdir=tmp_path)
    assert status.L2_errsq_mm >= 0.0
    assert (tmp_path / "fields.npz").exists()
    assert (tmp_path / "diffusion_solution.txt").exists()
    assert (tmp_path / "solution.png").exists()


def test_cli_warns_about_small_diffusion_penalty(capsys):
    assert main(["-r", "1", "--problem", "diffusion"]) == 0
    out = capsys.readouterr().out
    assert "may leave the SIPG form non-coercive" in out

    assert main(["-r", "1", "-e", "3", "--problem", "diffusion"]) == 0
    assert "non-coercive" not in capsys.readouterr().out
    assert "coercive" in get_parser().format_help()
