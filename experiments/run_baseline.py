from __future__ import annotations
from pathlib import Path

from dgsolve.core.config import DGConfig, MeshType, ProblemType
from dgsolve.algorithm.convergence import run_convergence_study, format_convergence_table
from dgsolve.diagnostics import save_npz, plot_convergence

import numpy as np


def run_case(cfg: DGConfig, levels: list[int], outdir: Path) -> list[dict]:
    outdir.mkdir(parents=True, exist_ok=True)

    rows = run_convergence_study(cfg, levels)

    save_npz(outdir / "convergence.npz",
             **{k: np.array([r[k] for r in rows]) for k in rows[0]})
    plot_convergence(rows, path=outdir / "figs" / "convergence.png")
    return rows


def main() -> None:
    base_out = Path("outputs")
    levels = [1, 2, 3, 4]

    for problem in ProblemType:
        for mesh_type in (MeshType.TRIANGULAR, MeshType.QUADRANGULAR):
            for degree in (1, 2):
                cfg = DGConfig(degree=degree, mesh_type=mesh_type, problem=problem,
                               use_upwinding=True)
                outdir = base_out / f"case_{problem.value}" / f"{mesh_type.value}_k{degree}"
                rows = run_case(cfg, levels, outdir)
                print(problem.value, mesh_type.value, f"k={degree}")
                print(format_convergence_table(rows))


if __name__ == "__main__":
    main()
