"""
Operators: local DG operators + global assembly + linear solves.

Public API:
- LocalOperator, AdvectionReactionOperator, DiffusionOperator, make_local_operator
- Assembler, assemble_system
- SolverConfig, conjugate_gradient, compute_residual
"""

# Local operators
from .local import (
    FaceBlocks,
    LocalOperator,
    AdvectionReactionOperator,
    DiffusionOperator,
    make_local_operator,
)

# Assembly
from .assemble import Assembler, AssemblerStateError, DegenerateOperatorError, assemble_system

# Linear solves
from .solve import SolverConfig, CGResult, conjugate_gradient, compute_residual, residual_norms

__all__ = [
    # Local operators
    "FaceBlocks",
    "LocalOperator",
    "AdvectionReactionOperator",
    "DiffusionOperator",
    "make_local_operator",

    # Assembly
    "Assembler",
    "AssemblerStateError",
    "DegenerateOperatorError",
    "assemble_system",

    # Solves
    "SolverConfig",
    "CGResult",
    "conjugate_gradient",
    "compute_residual",
    "residual_norms",
]
