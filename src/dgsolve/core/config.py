from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np


ScalarField = Callable[[np.ndarray, np.ndarray], np.ndarray]
VectorField = Callable[[np.ndarray, np.ndarray], Tuple[np.ndarray, np.ndarray]]


class MeshType(str, Enum):
    TRIANGULAR = "tri"
    QUADRANGULAR = "quad"
    TETRAHEDRAL = "tet"
    HEXAHEDRAL = "hex"


class ProblemType(str, Enum):
    DIFFUSION = "diffusion"
    ADVECTION_REACTION = "advection_reaction"


@dataclass(frozen=True)
class DGConfig:
    """
    Parameters of one DG run.

    eta is the flux/penalty stabilization: upwind weight for advection-reaction,
    penalty multiplier for diffusion.
    """
    eta: float = 1.0
    degree: int = 1
    ref_levels: int = 4
    use_preconditioner: bool = False
    shatter: bool = False
    use_upwinding: bool = False
    mesh_type: MeshType = MeshType.TRIANGULAR
    problem: ProblemType = ProblemType.ADVECTION_REACTION

    def __post_init__(self) -> None:
        if int(self.degree) < 1:
            raise ValueError("DGConfig requires degree >= 1.")
        if int(self.ref_levels) < 0:
            raise ValueError("DGConfig requires ref_levels >= 0.")
        if float(self.eta) < 0.0:
            raise ValueError("DGConfig requires eta >= 0.")

    @property
    def quadrature_order(self) -> int:
        return 2 * int(self.degree)


@dataclass(frozen=True)
class CaseConfig:
    """
    Coefficients and manufactured data of one model problem.

    Every callable is vectorized: it takes coordinate arrays (x, y) of equal
    shape and returns arrays of that shape (beta returns a pair of them).
    """
    name: str
    mu: ScalarField
    beta: VectorField
    epsilon: ScalarField
    rhs: ScalarField
    ref_sol: ScalarField
    dirichlet: Optional[ScalarField] = None

    def boundary_value(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Dirichlet datum; falls back to the reference solution."""
        g = self.dirichlet if self.dirichlet is not None else self.ref_sol
        return np.asarray(g(x, y), dtype=float)
