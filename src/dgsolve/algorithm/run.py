from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from ..core.cases import make_default_cases
from ..core.config import CaseConfig, DGConfig, ProblemType
from ..core.mesh import Mesh2D
from ..core.meshers import create_mesh
from ..operators.assemble import assemble_system
from ..operators.local import make_local_operator
from ..operators.solve import SolverConfig, conjugate_gradient, residual_norms
from .postprocess import SolverStatus, compute_errors


# smallest eta for which the diffusion convergence studies are reliable
MIN_DIFFUSION_ETA = 3.0


def default_solver_config(cfg: DGConfig, system_size: int, *, verbose: bool = False) -> SolverConfig:
    """
    CG settings used by the drivers: rel. tolerance 1e-8, 2N iterations,
    normal equations for the (non-symmetric) advection-reaction operator.
    """
    return SolverConfig(
        tol=1e-8,
        max_iter=2 * int(system_size),
        rr_max=1e4,
        use_normal_eqns=ProblemType(cfg.problem) != ProblemType.DIFFUSION,
        verbose=verbose,
    )


def run_dg(
    mesh: Mesh2D,
    cfg: DGConfig,
    case: Optional[CaseConfig] = None,
    solver_cfg: Optional[SolverConfig] = None,
    *,
    outdir: Optional[Path] = None,
    verbose: bool = False,
) -> Tuple[SolverStatus, np.ndarray]:
    """
    Assemble, solve and post-process one DG problem on ``mesh``.

    Returns the status record (mesh size, squared L2 errors, CG iterations,
    true relative residual) and the global coefficient vector. The Jacobi
    preconditioner is not used in normal-equations mode. With ``outdir``
    the solution is also exported (npz fields, gnuplot samples, png).
    """
    if case is None:
        case = make_default_cases()[ProblemType(cfg.problem).value]

    status = SolverStatus(mesh_h=mesh.mesh_diameter())

    local_op = make_local_operator(cfg, case)
    assm = assemble_system(mesh, local_op, build_pc=cfg.use_preconditioner)

    if solver_cfg is None:
        solver_cfg = default_solver_config(cfg, assm.system_size(), verbose=verbose)

    # Jacobi scaling is applied to the symmetric iteration only.
    pc = None if solver_cfg.use_normal_eqns else assm.pc
    result = conjugate_gradient(assm.lhs, assm.rhs, solver_cfg, pc=pc)
    sol = result.x

    status.L2_errsq_qp, status.L2_errsq_mm = compute_errors(mesh, sol, cfg.degree, case.ref_sol)
    status.iterations = result.iterations
    status.converged = result.converged
    status.rel_residual = residual_norms(assm.lhs, sol, assm.rhs)["||r||2/||f||2"]

    if outdir is not None:
        from .. import diagnostics

        outdir = Path(outdir)
        diagnostics.export_fields(outdir / "fields.npz", mesh, sol, cfg.degree, case)
        diagnostics.write_gnuplot(outdir / f"{case.name}_solution.txt", mesh, sol, cfg.degree)
        diagnostics.plot_solution(
            mesh, sol, cfg.degree,
            title=f"{case.name} (k={cfg.degree})",
            path=outdir / "solution.png",
            shatter=0.2 if cfg.shatter else 0.0,
        )

    return status, sol


def run_diffusion_solver(mesh: Mesh2D, cfg: DGConfig, **kwargs) -> Tuple[SolverStatus, np.ndarray]:
    return run_dg(mesh, replace(cfg, problem=ProblemType.DIFFUSION), **kwargs)


def run_advection_reaction_solver(mesh: Mesh2D, cfg: DGConfig, **kwargs) -> Tuple[SolverStatus, np.ndarray]:
    return run_dg(mesh, replace(cfg, problem=ProblemType.ADVECTION_REACTION), **kwargs)


def run_from_config(cfg: DGConfig, *, outdir: Optional[Path] = None, verbose: bool = False) -> SolverStatus:
    """Build the mesh described by ``cfg`` and run the selected solver."""
    mesh = create_mesh(cfg.mesh_type, cfg.ref_levels)

    label = "diffusion" if ProblemType(cfg.problem) == ProblemType.DIFFUSION else "advection-reaction"
    print(f"Running dG {label} solver")
    print(f"  degree: {cfg.degree}, eta: {cfg.eta}")
    if ProblemType(cfg.problem) == ProblemType.DIFFUSION and cfg.eta < MIN_DIFFUSION_ETA:
        print(f"⚠️ eta = {cfg.eta:g} may leave the SIPG form non-coercive; use eta >= {MIN_DIFFUSION_ETA:g} for reliable rates.")

    status, _ = run_dg(mesh, cfg, outdir=outdir, verbose=verbose)
    return status
