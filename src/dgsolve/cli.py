from __future__ import annotations

import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import Optional, Sequence

from .algorithm.convergence import format_convergence_table, run_convergence_study
from .algorithm.run import run_from_config
from .core.config import DGConfig, MeshType, ProblemType


def get_parser() -> ArgumentParser:

    parser = ArgumentParser(prog="dgsolve", description="2D DG advection-reaction / diffusion solver")
    parser.add_argument('-e', '--eta', type=float, default=1.0,
                        help="upwind weight (advection-reaction) or SIPG penalty multiplier (diffusion); "
                             "the default 1 may not be coercive for diffusion, use 3 or more")
    parser.add_argument('-k', '--degree', type=int, default=1)
    parser.add_argument('-r', '--ref-levels', type=int, default=4)
    parser.add_argument('-m', '--mesh', choices=[m.value for m in MeshType], default=MeshType.TRIANGULAR.value)
    parser.add_argument('-p', '--preconditioner', action='store_true', default=False)
    parser.add_argument('-S', '--shatter', action='store_true', default=False)
    parser.add_argument('-u', '--upwinding', action='store_true', default=False)
    parser.add_argument('--problem', choices=[p.value for p in ProblemType],
                        default=ProblemType.ADVECTION_REACTION.value)
    parser.add_argument('--levels', type=int, nargs='+', default=None,
                        help="run a convergence study over these refinement levels")
    parser.add_argument('-o', '--outdir', type=Path, default=None,
                        help="export fields, gnuplot samples and plots here")
    parser.add_argument('-v', '--verbose', action='store_true', default=False)

    return parser


def config_from_args(args) -> DGConfig:
    degree = args.degree
    if degree < 1:
        print("Degree must be positive. Falling back to 1.")
        degree = 1

    ref_levels = args.ref_levels
    if ref_levels < 0:
        print("Refinement levels must be positive. Falling back to 1.")
        ref_levels = 1

    return DGConfig(
        eta=args.eta,
        degree=degree,
        ref_levels=ref_levels,
        use_preconditioner=args.preconditioner,
        shatter=args.shatter,
        use_upwinding=args.upwinding,
        mesh_type=MeshType(args.mesh),
        problem=ProblemType(args.problem),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:

    args = get_parser().parse_args(argv)
    cfg = config_from_args(args)

    try:
        if args.levels:
            rows = run_convergence_study(cfg, args.levels, verbose=args.verbose)
            print(format_convergence_table(rows))
        else:
            status = run_from_config(cfg, outdir=args.outdir, verbose=args.verbose)
            print(status)
    except NotImplementedError as exc:
        print(exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
