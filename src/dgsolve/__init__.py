"""
Top-level package for the project.

We keep three sibling subpackages:
- core: problem definition + meshes + quadratures + bases
- operators: local DG operators, global assembly, iterative solver
- algorithm: solve driver, error pass, convergence studies
"""

__version__ = "0.1.0"

__all__ = ["core", "operators", "algorithm"]
