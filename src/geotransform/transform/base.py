"""
Common contract of every transform model.

A model maps points from a source frame to a target frame:

    forward  (direct=True)  : source -> target
    backward (direct=False) : target -> source

Lifecycle:
- Build with explicit parameters (or identity defaults).
- compute(source, target) estimates parameters from correspondences,
  overwriting the previous fit. Returns True/False, never raises for
  ordinary bad input.
- transform() / transform_points() are pure functions of the current
  coefficients.

Subclasses provide:
- _estimate(src, dst): build the design matrix, solve, commit coefficients
- _forward(pts) / _backward(pts): vectorized (N, dim) -> (N, dim) mappings
- parameters(), inverse(), is_identity()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
import logging

import numpy as np

from ..exceptions import DegenerateTransformError, SingularSystemError
from ..linalg.solver import DenseLinearSolver, LinearSolution
from ..types import (
    FloatArray, Point, PointLike, Points, PointsLike,
    as_point, as_points, make_point,
)

if TYPE_CHECKING:
    from .evaluate import FitReport

logger = logging.getLogger(__name__)

# Condition number above which a fit is reported as degenerate.
DEFAULT_MAX_CONDITION = 1e12


class TransformType(Enum):
    translation = "translation"
    rotation = "rotation"
    scaling = "scaling"
    helmert_2d = "helmert_2d"
    affine = "affine"
    projective = "projective"
    perspective = "perspective"
    helmert_3d = "helmert_3d"
    chain = "chain"


class TransformModel(ABC):
    """
    Abstract transform between two Cartesian frames.

    Keyword arguments shared by all models:
    - solver: DenseLinearSolver used by compute() (SVD by default)
    - strict: reject fits whose design matrix is rank deficient or whose
      condition number exceeds max_condition (default: accept and warn)
    - max_condition: degeneracy threshold on the design matrix condition number
    """

    transform_type: TransformType
    dimension: int = 2
    _min_points: int = 0

    def __init__(
        self,
        *,
        solver: Optional[DenseLinearSolver] = None,
        strict: bool = False,
        max_condition: float = DEFAULT_MAX_CONDITION,
    ) -> None:
        self.solver = solver if solver is not None else DenseLinearSolver()
        self.strict = bool(strict)
        self.max_condition = float(max_condition)
        # Diagnostics of the most recent accepted solve.
        self.last_solution: Optional[LinearSolution] = None
        self._pending_solution: Optional[LinearSolution] = None

    # ---------- Point count ----------
    def minimum_points(self) -> int:
        """Smallest number of correspondences compute() accepts."""
        return self._min_points

    def is_number_of_points_valid(self, n: int) -> bool:
        return n >= self.minimum_points()

    # ---------- Estimation ----------
    def compute(self, source: PointsLike, target: PointsLike) -> bool:
        """
        Estimate the model parameters from source[i] <-> target[i].

        Returns False (coefficients untouched) when:
          - the sets have different lengths
          - there are fewer than minimum_points() correspondences
          - coordinates have the wrong dimension or are not finite
          - strict mode is on and the system is degenerate
        """
        checked = self._check_correspondences(source, target)
        if checked is None:
            return False
        src, dst = checked

        self._pending_solution = None
        try:
            ok = self._estimate(src, dst)
        except SingularSystemError as e:
            logger.error(f"{type(self).__name__}: {e}")
            return False

        # diagnostics are only published together with the parameters
        if ok:
            self.last_solution = self._pending_solution
            logger.debug(f"{type(self).__name__} computed from {src.shape[0]} points: {self.parameters()}")
        return ok

    def _check_correspondences(
            self,
            source: PointsLike,
            target: PointsLike,
    ) -> Optional[tuple[Points, Points]]:
        n1, n2 = len(source), len(target)
        if n1 != n2:
            logger.error(f"Sets of points with different size. Size source = {n1} and size target = {n2}")
            return None

        if not self.is_number_of_points_valid(n1):
            logger.error(f"Invalid number of points: {n1} < {self.minimum_points()}")
            return None

        try:
            src = as_points(source, self.dimension)
            dst = as_points(target, self.dimension)
        except ValueError as e:
            logger.error(f"{type(self).__name__}: {e}")
            return None

        if not (np.isfinite(src).all() and np.isfinite(dst).all()):
            logger.error("Correspondences contain non-finite coordinates")
            return None

        return src, dst

    def _solve(self, A: FloatArray, b: FloatArray) -> Optional[LinearSolution]:
        """
        Solve the model's linear system and screen it for degeneracy.

        Returns None only in strict mode when the system is degenerate.
        """
        solution = self.solver.solve_detailed(A, b)

        degenerate = (not solution.is_full_rank) or solution.condition_number > self.max_condition
        if degenerate:
            msg = (f"{type(self).__name__}: degenerate fit "
                   f"(rank {solution.rank}/{A.shape[1]}, condition {solution.condition_number:.3g})")
            if self.strict:
                logger.error(msg)
                return None
            logger.warning(msg)

        self._pending_solution = solution
        return solution

    @abstractmethod
    def _estimate(self, src: Points, dst: Points) -> bool:
        """Build and solve the model-specific system; commit on success."""

    # ---------- Application ----------
    def transform(self, point: PointLike, direct: bool = True) -> Point:
        """
        Transform a single point.

        Returns a Point2D / Point3D. Degenerate projective inputs give
        non-finite coordinates instead of raising.
        """
        p = as_point(point, self.dimension)
        out = self.transform_points(p.reshape(1, -1), direct=direct)
        return make_point(out[0].tolist())

    def transform_points(
            self,
            points: PointsLike,
            direct: bool = True,
            *,
            out: Optional[FloatArray] = None,
            workers: Optional[int] = None,
    ) -> Points:
        """
        Transform an ordered sequence of points, preserving order and length.

        out:
          optional (N, dim) float64 array receiving the result. It may be
          the input array itself.
        workers:
          when > 1 the points are split into contiguous chunks mapped on a
          thread pool. The result is identical to the serial path.
        """
        pts = as_points(points, self.dimension)
        fn = self._forward if direct else self._checked_backward

        n = pts.shape[0]
        if n == 0:
            result = np.zeros((0, self.dimension), dtype=np.float64)
        elif workers is not None and workers > 1 and n >= 2 * workers:
            chunks = np.array_split(pts, workers)
            with ThreadPoolExecutor(max_workers=workers) as pool:
                parts = list(pool.map(fn, chunks))
            result = np.vstack(parts)
        else:
            result = fn(pts)

        if out is None:
            return result

        if not isinstance(out, np.ndarray) or out.shape != result.shape:
            raise ValueError(f"out must be an array of shape {result.shape}")
        out[...] = result
        return out

    def __call__(self, point: PointLike) -> Point:
        return self.transform(point)

    def _checked_backward(self, pts: Points) -> Points:
        if not self.is_invertible():
            raise DegenerateTransformError(f"{type(self).__name__} has no finite inverse")
        return self._backward(pts)

    @abstractmethod
    def _forward(self, pts: Points) -> Points:
        ...

    @abstractmethod
    def _backward(self, pts: Points) -> Points:
        ...

    def is_invertible(self) -> bool:
        return True

    # ---------- Parameters ----------
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Primary parameters, as accepted by the constructor."""

    def with_parameters(self, **changes: Any) -> "TransformModel":
        """
        Return a new model of the same kind with some parameters replaced.

        All derived coefficients of the new model are computed at once.
        """
        params = self.parameters()
        unknown = set(changes) - set(params)
        if unknown:
            raise TypeError(f"{type(self).__name__} has no parameter(s) {sorted(unknown)}")
        params.update(changes)
        return type(self)(**params, **self._options())

    def _options(self) -> dict[str, Any]:
        return {"solver": self.solver, "strict": self.strict, "max_condition": self.max_condition}

    @abstractmethod
    def inverse(self) -> "TransformModel":
        """A new model mapping target -> source."""

    @abstractmethod
    def is_identity(self) -> bool:
        ...

    # ---------- Fit quality ----------
    def rmse(self, source: PointsLike, target: PointsLike) -> Optional["FitReport"]:
        """Fit the model and report residuals / RMSE (None if the fit fails)."""
        from .evaluate import FitEvaluator
        return FitEvaluator(self).evaluate(source, target)

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.parameters().items())
        return f"{type(self).__name__}({args})"


class Transform2D(TransformModel):
    """Transform between two planar frames."""
    dimension = 2


class Transform3D(TransformModel):
    """Transform between two 3D frames."""
    dimension = 3
