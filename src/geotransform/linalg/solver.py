"""
Dense linear least-squares solver.

Solves A @ x = b for an (m x n) design matrix A with m >= n:

    x = argmin ||A x - b||^2

Available decompositions:
- "svd"      : minimum-norm least squares, robust to rank deficiency (default)
- "qr"       : reduced QR, R x = Q^T b (full column rank required)
- "lu"       : LU of the square system, or of the normal equations when m > n
- "cholesky" : Cholesky of the normal equations A^T A (SPD required)

The SVD path never fails on a singular system: it returns the pseudo-inverse
solution. Every other path raises SingularSystemError when A does not have
full column rank, since its answer would be meaningless.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional
import logging

import numpy as np
import scipy.linalg

from ..exceptions import SingularSystemError
from ..types import FloatArray

logger = logging.getLogger(__name__)

SolverMethod = Literal["svd", "qr", "lu", "cholesky"]
SOLVER_METHODS: tuple[str, ...] = ("svd", "qr", "lu", "cholesky")


@dataclass(frozen=True)
class LinearSolution:
    """
    Solution of a linear system plus conditioning diagnostics.

    singular_values are those of A (not of the normal equations), sorted
    in decreasing order. condition_number is inf when A is rank deficient.
    """
    x: FloatArray
    rank: int
    singular_values: FloatArray
    condition_number: float

    @property
    def is_full_rank(self) -> bool:
        return self.rank == self.x.shape[0]


# ---------- Validation helpers ----------
def _validate_system(A: np.ndarray, b: np.ndarray) -> tuple[FloatArray, FloatArray]:
    A = np.asarray(A, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    if A.ndim != 2:
        raise ValueError(f"Design matrix must be 2-D, got shape {A.shape}")
    if b.ndim != 1:
        raise ValueError(f"Right-hand side must be 1-D, got shape {b.shape}")
    m, n = A.shape
    if b.shape[0] != m:
        raise ValueError(f"A has {m} rows but b has {b.shape[0]} entries")
    if n == 0:
        raise ValueError("Design matrix has no columns")
    if m < n:
        raise ValueError(f"Under-determined system: {m} equations for {n} unknowns")
    if not (np.isfinite(A).all() and np.isfinite(b).all()):
        raise ValueError("Linear system contains non-finite values")
    return A, b


def _numeric_rank(s: FloatArray, shape: tuple[int, int], rcond: Optional[float]) -> int:
    """
    Rank from singular values, same default tolerance as numpy.linalg.matrix_rank:

        tol = s_max * max(m, n) * eps
    """
    if s.size == 0 or s[0] == 0.0:
        return 0
    if rcond is None:
        tol = s[0] * max(shape) * np.finfo(np.float64).eps
    else:
        tol = s[0] * rcond
    return int(np.count_nonzero(s > tol))


def _condition(s: FloatArray, rank: int, n: int) -> float:
    if rank < n or s[-1] == 0.0:
        return float("inf")
    return float(s[0] / s[-1])


def condition_number(A: np.ndarray) -> float:
    """2-norm condition number of A, inf when rank deficient."""
    A = np.asarray(A, dtype=np.float64)
    s = np.linalg.svd(A, compute_uv=False)
    rank = _numeric_rank(s, A.shape, None)
    return _condition(s, rank, A.shape[1])


# ---------- Decomposition-specific solvers ----------
def solve_svd(A: np.ndarray, b: np.ndarray, rcond: Optional[float] = None) -> FloatArray:
    """
    Minimum-norm least squares via SVD (numpy.linalg.lstsq).

    Singular or near-singular systems return the pseudo-inverse solution.
    """
    A, b = _validate_system(A, b)
    x, _residuals, _rank, _sv = np.linalg.lstsq(A, b, rcond=rcond)
    return x.astype(np.float64)


def solve_qr(A: np.ndarray, b: np.ndarray) -> FloatArray:
    """
    Least squares via reduced QR:

        A = Q R   ->   R x = Q^T b

    R is upper triangular (n x n), solved by back substitution.
    """
    A, b = _validate_system(A, b)
    Q, R = np.linalg.qr(A, mode="reduced")

    diag = np.abs(np.diag(R))
    tol = diag.max(initial=0.0) * max(A.shape) * np.finfo(np.float64).eps
    if diag.size == 0 or diag.min() <= tol:
        raise SingularSystemError("QR solve: design matrix is rank deficient")

    return scipy.linalg.solve_triangular(R, Q.T @ b, lower=False)


def solve_lu(A: np.ndarray, b: np.ndarray) -> FloatArray:
    """
    LU solve of the square system, or of the normal equations when m > n.
    """
    A, b = _validate_system(A, b)
    if A.shape[0] != A.shape[1]:
        b = A.T @ b
        A = A.T @ A

    s = np.linalg.svd(A, compute_uv=False)
    if _numeric_rank(s, A.shape, None) < A.shape[1]:
        raise SingularSystemError("LU solve: matrix is singular")

    lu, piv = scipy.linalg.lu_factor(A, check_finite=False)
    return scipy.linalg.lu_solve((lu, piv), b, check_finite=False)


def solve_cholesky(A: np.ndarray, b: np.ndarray) -> FloatArray:
    """
    Cholesky solve of the normal equations:

        (A^T A) x = A^T b

    A^T A is symmetric positive definite only when A has full column rank.
    """
    A, b = _validate_system(A, b)
    N = A.T @ A
    rhs = A.T @ b
    try:
        c, lower = scipy.linalg.cho_factor(N, check_finite=False)
    except np.linalg.LinAlgError as e:
        raise SingularSystemError(f"Cholesky solve: normal matrix is not positive definite ({e})") from e
    return scipy.linalg.cho_solve((c, lower), rhs, check_finite=False)


_DISPATCH = {
    "qr": solve_qr,
    "lu": solve_lu,
    "cholesky": solve_cholesky,
}


# ---------- Solver object ----------
@dataclass(frozen=True)
class DenseLinearSolver:
    """
    Selectable-decomposition solver used by every transform model.

    method:
      - "svd" (default) works for any system, including rank-deficient ones.
      - "qr" / "lu" / "cholesky" are faster alternatives for well-posed systems
        and raise SingularSystemError otherwise.
    rcond:
      relative cutoff for small singular values (SVD path and rank estimate).
      None uses machine precision scaled by the matrix size.
    """
    method: SolverMethod = "svd"
    rcond: Optional[float] = None

    def __post_init__(self) -> None:
        if self.method not in SOLVER_METHODS:
            raise ValueError(f"Unknown solver method {self.method!r}, expected one of {SOLVER_METHODS}")
        if self.rcond is not None and self.rcond < 0.0:
            raise ValueError("rcond must be >= 0")

    def solve(self, A: np.ndarray, b: np.ndarray) -> FloatArray:
        """Return x minimizing ||A x - b||^2."""
        return self.solve_detailed(A, b).x

    def solve_detailed(self, A: np.ndarray, b: np.ndarray) -> LinearSolution:
        """
        Solve and report rank / singular values / condition number of A.

        The diagnostics always come from the SVD of A so callers can detect
        a degenerate fit whatever decomposition produced x.
        """
        A, b = _validate_system(A, b)
        n = A.shape[1]

        if self.method == "svd":
            x, _residuals, _rank, s = np.linalg.lstsq(A, b, rcond=self.rcond)
            s = s.astype(np.float64)
        else:
            s = np.linalg.svd(A, compute_uv=False)
            x = _DISPATCH[self.method](A, b)

        rank = _numeric_rank(s, A.shape, self.rcond)
        cond = _condition(s, rank, n)
        if rank < n:
            logger.debug(f"Rank deficient system: rank {rank} < {n} unknowns")

        return LinearSolution(
            x=np.asarray(x, dtype=np.float64),
            rank=rank,
            singular_values=s,
            condition_number=cond,
        )
