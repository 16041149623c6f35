"""
Algorithms: solve driver, error pass, convergence studies.
"""

from .postprocess import (
    SolverStatus,
    compute_errors,
    local_solution,
    cell_values,
    evaluate_solution,
)

from .run import (
    default_solver_config,
    run_dg,
    run_diffusion_solver,
    run_advection_reaction_solver,
    run_from_config,
)

from .convergence import (
    convergence_rates,
    run_convergence_study,
    format_convergence_table,
)

__all__ = [
    # postprocess.py
    "SolverStatus",
    "compute_errors",
    "local_solution",
    "cell_values",
    "evaluate_solution",
    # run.py
    "default_solver_config",
    "run_dg",
    "run_diffusion_solver",
    "run_advection_reaction_solver",
    "run_from_config",
    # convergence.py
    "convergence_rates",
    "run_convergence_study",
    "format_convergence_table",
]
