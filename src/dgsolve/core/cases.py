from __future__ import annotations

import numpy as np

from .config import CaseConfig, ProblemType


def _const(value: float):
    def f(x, y):
        return np.full(np.shape(x), float(value))
    return f


def _const_beta(bx: float, by: float):
    def beta(x, y):
        shape = np.shape(x)
        return np.full(shape, float(bx)), np.full(shape, float(by))
    return beta


def make_diffusion_case() -> CaseConfig:
    """-Δu = f on the unit square, u = sin(πx) sin(πy), homogeneous Dirichlet."""

    def rhs(x, y):
        return 2.0 * np.pi**2 * np.sin(np.pi * x) * np.sin(np.pi * y)

    def ref_sol(x, y):
        return np.sin(np.pi * x) * np.sin(np.pi * y)

    return CaseConfig(
        name=ProblemType.DIFFUSION.value,
        mu=_const(1.0),
        beta=_const_beta(1.0, 0.0),
        epsilon=_const(1.0),
        rhs=rhs,
        ref_sol=ref_sol,
        dirichlet=_const(0.0),
    )


def make_advection_reaction_case() -> CaseConfig:
    """β·∇u + μu = f with β = (1, 0), μ = 1, u = sin(πx)."""
    mu = _const(1.0)
    beta = _const_beta(1.0, 0.0)

    def ref_sol(x, y):
        return np.sin(np.pi * x)

    def rhs(x, y):
        du_x = np.pi * np.cos(np.pi * x)
        du_y = np.zeros(np.shape(x))
        bx, by = beta(x, y)
        return bx * du_x + by * du_y + mu(x, y) * ref_sol(x, y)

    return CaseConfig(
        name=ProblemType.ADVECTION_REACTION.value,
        mu=mu,
        beta=beta,
        epsilon=_const(1.0),
        rhs=rhs,
        ref_sol=ref_sol,
    )


def make_default_cases() -> dict[str, CaseConfig]:
    cases = [make_diffusion_case(), make_advection_reaction_case()]
    return {c.name: c for c in cases}
