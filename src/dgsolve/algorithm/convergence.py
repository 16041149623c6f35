from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..core.config import CaseConfig, DGConfig
from ..core.meshers import create_mesh
from ..operators.solve import SolverConfig
from .run import run_dg


def convergence_rates(h: Sequence[float], err: Sequence[float]) -> np.ndarray:
    """
    Observed orders between consecutive levels:
        rate_k = log(e_{k-1} / e_k) / log(h_{k-1} / h_k)
    The first entry is NaN.
    """
    h = np.asarray(h, dtype=float)
    err = np.asarray(err, dtype=float)
    if h.shape != err.shape:
        raise ValueError(f"h has shape {h.shape}, err has shape {err.shape}")

    rates = np.full(h.shape, np.nan)
    if h.size > 1:
        with np.errstate(divide="ignore", invalid="ignore"):
            rates[1:] = np.log(err[:-1] / err[1:]) / np.log(h[:-1] / h[1:])
    return rates


def run_convergence_study(
    cfg: DGConfig,
    levels: Sequence[int],
    case: Optional[CaseConfig] = None,
    solver_cfg: Optional[SolverConfig] = None,
    verbose: bool = False,
) -> List[Dict[str, Any]]:
    """
    Solve the same problem on successively refined meshes.

    Returns one row per level:
      {"ref_levels", "h", "L2_error_qp", "L2_error_mm", "rate_qp", "rate_mm",
       "iterations", "converged"}
    """
    levels = [int(r) for r in levels]
    if not levels:
        raise ValueError("run_convergence_study: levels must not be empty")

    rows: List[Dict[str, Any]] = []
    for r in levels:
        cfg_r = replace(cfg, ref_levels=r)
        mesh = create_mesh(cfg_r.mesh_type, r)
        status, _ = run_dg(mesh, cfg_r, case, solver_cfg, verbose=verbose)
        rows.append(
            {
                "ref_levels": r,
                "h": status.mesh_h,
                "L2_error_qp": status.L2_error_qp,
                "L2_error_mm": status.L2_error_mm,
                "iterations": status.iterations,
                "converged": status.converged,
            }
        )

    h = [row["h"] for row in rows]
    rate_qp = convergence_rates(h, [row["L2_error_qp"] for row in rows])
    rate_mm = convergence_rates(h, [row["L2_error_mm"] for row in rows])
    for row, rq, rm in zip(rows, rate_qp, rate_mm):
        row["rate_qp"] = float(rq)
        row["rate_mm"] = float(rm)
    return rows


def format_convergence_table(rows: List[Dict[str, Any]]) -> str:
    lines = [f"{'h':>12} {'L2 (qp)':>12} {'rate':>6} {'L2 (mm)':>12} {'rate':>6} {'iters':>6}"]
    for row in rows:
        lines.append(
            f"{row['h']:12.4e} {row['L2_error_qp']:12.4e} {row['rate_qp']:6.2f} "
            f"{row['L2_error_mm']:12.4e} {row['rate_mm']:6.2f} {row['iterations']:6d}"
        )
    return "\n".join(lines)
