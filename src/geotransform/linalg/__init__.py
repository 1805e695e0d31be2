"""
Dense linear algebra used by the transform models.
"""

from .solver import (
    DenseLinearSolver, LinearSolution, SolverMethod, SOLVER_METHODS,
    solve_svd, solve_qr, solve_lu, solve_cholesky, condition_number,
)

__all__ = [
    "DenseLinearSolver", "LinearSolution", "SolverMethod", "SOLVER_METHODS",
    "solve_svd", "solve_qr", "solve_lu", "solve_cholesky", "condition_number",
]
