# operators/solve.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import scipy.sparse as sp


@dataclass(frozen=True)
class SolverConfig:
    """
    Conjugate gradient parameters.

    tol:        stop when ||r|| / ||r0|| < tol
    max_iter:   iteration ceiling, None means 2 * N
    restart:    recompute r = b - A x every ``restart`` iterations
    rr_max:     stop if ||r|| / ||r0|| grows above this (divergence guard)
    use_normal_eqns: run CG on A^T A x = A^T b (non-symmetric A)

    A preconditioner passed together with ``use_normal_eqns`` left-scales A
    before squaring. For the centred-flux advection operator that raises the
    condition number; the drivers only pass it in symmetric mode.
    """
    tol: float = 1e-8
    max_iter: Optional[int] = None
    restart: int = 50
    rr_max: float = 1e4
    use_normal_eqns: bool = False
    verbose: bool = False
    save_history: bool = False

    def __post_init__(self) -> None:
        if float(self.tol) <= 0.0:
            raise ValueError("SolverConfig requires tol > 0.")
        if self.max_iter is not None and int(self.max_iter) < 0:
            raise ValueError("SolverConfig requires max_iter >= 0.")
        if int(self.restart) < 1:
            raise ValueError("SolverConfig requires restart >= 1.")


@dataclass
class CGResult:
    x: np.ndarray
    iterations: int
    converged: bool
    rel_residual: float
    history: List[float] = field(default_factory=list)


def compute_residual(A, u: np.ndarray, f: np.ndarray) -> np.ndarray:
    """
    r = f - A u
    """
    return f - A @ u


def residual_norms(A, u: np.ndarray, f: np.ndarray) -> Dict[str, float]:
    """
    Common residual diagnostics.
    """
    r = compute_residual(A, u, f)
    fn = float(np.linalg.norm(f))
    rn = float(np.linalg.norm(r))
    return {
        "||r||2": rn,
        "||f||2": fn,
        "||r||2/||f||2": rn / fn if fn > 0 else np.nan,
        "||u||2": float(np.linalg.norm(u)),
        "||r||inf": float(np.max(np.abs(r))) if r.size else 0.0,
    }


def _normal_equations(A, b: np.ndarray, pc=None):
    """(PA)^T (PA), (PA)^T P b with P = I when no preconditioner is given."""
    if pc is not None:
        A = pc @ A
        b = pc @ b
    AtA = A.T @ A
    if sp.issparse(AtA):
        AtA = AtA.tocsr()
    return AtA, A.T @ b


def conjugate_gradient(
    A,
    b: np.ndarray,
    cfg: Optional[SolverConfig] = None,
    *,
    pc=None,
    x0: Optional[np.ndarray] = None,
) -> CGResult:
    """
    Jacobi-preconditioned conjugate gradient.

    With ``cfg.use_normal_eqns`` the iteration runs on the (left-preconditioned)
    normal equations, so any non-singular A can be handled at the price of a
    squared condition number.

    Not converging within ``max_iter`` is not an error: the last iterate is
    returned with ``converged=False``.

    Parameters
    ----------
    A : (N, N) sparse matrix or ndarray
    b : (N,) right-hand side
    pc : (N, N) diagonal preconditioner approximating A^{-1}, optional
    x0 : (N,) initial guess, zero by default
    """
    cfg = SolverConfig() if cfg is None else cfg
    b = np.asarray(b, dtype=float)

    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"A has shape {A.shape}, expected square (N, N)")
    N = A.shape[0]
    if b.shape != (N,):
        raise ValueError(f"b has shape {b.shape}, expected ({N},)")
    if pc is not None and pc.shape != (N, N):
        raise ValueError(f"pc has shape {pc.shape}, expected {(N, N)}")

    if cfg.use_normal_eqns:
        op, rhs = _normal_equations(A, b, pc)
        M = None
    else:
        op, rhs = A, b
        M = pc

    max_iter = 2 * N if cfg.max_iter is None else int(cfg.max_iter)

    if x0 is None:
        x = np.zeros(N)
    else:
        x = np.array(x0, dtype=float)
        if x.shape != (N,):
            raise ValueError(f"x0 has shape {x.shape}, expected ({N},)")

    r = rhs - op @ x
    nr0 = float(np.linalg.norm(r))
    history: List[float] = [1.0] if cfg.save_history else []

    if nr0 == 0.0:
        return CGResult(x=x, iterations=0, converged=True, rel_residual=0.0, history=history)

    z = r if M is None else M @ r
    d = z.copy()
    rz = float(np.dot(r, z))
    rr = 1.0
    it = 0

    while rr >= cfg.tol and it < max_iter:
        q = op @ d
        dq = float(np.dot(d, q))
        if dq == 0.0:
            print(f"⚠️ CG breakdown at iteration {it}: d^T A d = 0")
            break

        alpha = rz / dq
        x += alpha * d
        it += 1

        if it % cfg.restart == 0:
            r = rhs - op @ x
        else:
            r -= alpha * q

        rr = float(np.linalg.norm(r)) / nr0
        if cfg.save_history:
            history.append(rr)
        if cfg.verbose and (it % cfg.restart == 0 or rr < cfg.tol):
            print(f"  [cg] iter {it:6d} | rel residual {rr:.6e}")

        if rr > cfg.rr_max:
            print(f"⚠️ CG diverging at iteration {it}: rel residual {rr:.3e} > {cfg.rr_max:g}")
            break

        z = r if M is None else M @ r
        rz_new = float(np.dot(r, z))
        d = z + (rz_new / rz) * d
        rz = rz_new

    converged = rr < cfg.tol
    if cfg.verbose:
        status = "converged" if converged else "NOT converged"
        print(f"  [cg] {status} after {it} iterations, rel residual {rr:.6e}")

    return CGResult(x=x, iterations=it, converged=converged, rel_residual=rr, history=history)
