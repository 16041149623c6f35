# diagnostics.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import PolyCollection

from .algorithm.postprocess import cell_values, evaluate_solution
from .core.config import CaseConfig
from .core.mesh import Mesh2D, shatter_mesh


# -----------------------------
# I/O helpers
# -----------------------------

def save_npz(path: Path, **arrays: np.ndarray) -> None:
    """Save compressed .npz (creates parent dirs)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


def nodal_debug_fields(mesh: Mesh2D, case: CaseConfig) -> dict[str, np.ndarray]:
    """Problem coefficients sampled at mesh vertices."""
    x, y = mesh.points[:, 0], mesh.points[:, 1]
    bx, by = case.beta(x, y)
    return {
        "mu": np.asarray(case.mu(x, y), dtype=float),
        "epsilon": np.asarray(case.epsilon(x, y), dtype=float),
        "beta_x": np.asarray(bx, dtype=float),
        "beta_y": np.asarray(by, dtype=float),
    }


def export_fields(path: Path, mesh: Mesh2D, sol: np.ndarray, degree: int, case: CaseConfig) -> bool:
    """
    Write mesh, zonal solution (leading coefficient per cell) and nodal
    coefficient fields to ``path`` (.npz). Returns False if the file cannot
    be written; the failure is reported, not raised.
    """
    try:
        save_npz(
            Path(path),
            points=mesh.points,
            cells=mesh.cells,
            solution=cell_values(mesh, sol, degree),
            **nodal_debug_fields(mesh, case),
        )
    except OSError as exc:
        print(f"⚠️ Error creating database {path}: {exc}")
        return False
    return True


def write_gnuplot(path: Path, mesh: Mesh2D, sol: np.ndarray, degree: int, n: int = 6) -> bool:
    """Write ``x y u_h`` lines sampled at test points of every cell."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savetxt(path, evaluate_solution(mesh, sol, degree, n=n), fmt="%.10g")
    except OSError as exc:
        print(f"⚠️ Error writing {path}: {exc}")
        return False
    return True


# -----------------------------
# Plotting
# -----------------------------

def plot_solution(
    mesh: Mesh2D,
    sol: np.ndarray,
    degree: int,
    *,
    title: str = "",
    path: Optional[Path] = None,
    shatter: float = 0.0,
    cmap: str | None = None,
    show: bool = False,
    close: bool = True,
) -> bool:
    """
    Plot the per-cell solution as filled polygons.

    ``shatter`` > 0 shrinks each cell toward its barycenter so the
    inter-element jumps of the discontinuous field stay visible.
    """
    polys = shatter_mesh(mesh, shatter) if shatter > 0.0 else mesh.points[mesh.cells]
    vals = cell_values(mesh, sol, degree)

    fig, ax = plt.subplots()
    coll = PolyCollection(polys, array=vals, cmap=cmap, edgecolors="face")
    ax.add_collection(coll)
    ax.autoscale_view()
    ax.set_aspect("equal")
    fig.colorbar(coll, ax=ax)
    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    fig.tight_layout()

    ok = True
    if path is not None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(path, dpi=200)
        except OSError as exc:
            print(f"⚠️ Error saving figure {path}: {exc}")
            ok = False

    if show:
        plt.show()

    if close:
        plt.close(fig)
    return ok


def plot_convergence(rows: list[dict], *, path: Optional[Path] = None,
                     show: bool = False, close: bool = True) -> None:
    """log-log plot of both L2 errors against h."""
    h = np.array([r["h"] for r in rows])
    fig, ax = plt.subplots()
    ax.loglog(h, [r["L2_error_qp"] for r in rows], "o-", label="L2 (qp)")
    ax.loglog(h, [r["L2_error_mm"] for r in rows], "s--", label="L2 (mm)")
    ax.set_xlabel("h")
    ax.set_ylabel("error")
    ax.legend()
    ax.grid(True, which="both", alpha=0.3)
    fig.tight_layout()

    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=200)

    if show:
        plt.show()

    if close:
        plt.close(fig)
