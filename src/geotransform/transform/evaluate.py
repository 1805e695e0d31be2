"""
Fit quality of a transform model on a correspondence set.

    residual_i = || T(source_i) - target_i ||^2
    rmse       = sqrt( sum(residual_i) / (dim * (n - minimum_points)) )

The denominator counts the redundant observations of the fit. With zero
redundancy (n == minimum_points) it vanishes; a vanishing sum of squares then
gives rmse = 0, anything else falls back to sqrt(sum / (dim * n)).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np

from ..exceptions import FitError
from ..types import FloatArray, PointsLike, as_points
from .base import TransformModel

logger = logging.getLogger(__name__)

# relative tolerance on the sum of squares for an "exact" minimal fit
_EXACT_FIT_RTOL = 1e-12


@dataclass(frozen=True)
class FitReport:
    rmse: float                 # root mean square error with redundancy correction
    residuals: FloatArray       # (N,) squared error per correspondence
    n_points: int               # number of correspondences
    degrees_of_freedom: int     # dim * (n - minimum_points)


def residuals(model: TransformModel, source: PointsLike, target: PointsLike) -> FloatArray:
    """
    Squared residual per correspondence of an already-computed model.

    The model is not refitted.
    """
    src = as_points(source, model.dimension)
    dst = as_points(target, model.dimension)
    if src.shape != dst.shape:
        raise ValueError(f"source and target must have same shape, got {src.shape} vs {dst.shape}")
    diff = model.transform_points(src) - dst
    return np.sum(diff * diff, axis=1)


def root_mean_square_error(
        res: FloatArray,
        dimension: int,
        minimum_points: int,
        scale: float = 1.0,
) -> float:
    """RMSE of squared residuals, corrected for the model's minimal point count."""
    n = res.shape[0]
    total = float(np.sum(res))
    dof = dimension * (n - minimum_points)
    if dof > 0:
        return float(np.sqrt(total / dof))

    if n == 0:
        return 0.0
    if total <= _EXACT_FIT_RTOL * max(scale, 1.0) ** 2:
        return 0.0
    logger.warning(f"No redundancy ({n} points for a {minimum_points}-point model): "
                   f"RMSE computed over all {dimension * n} coordinates")
    return float(np.sqrt(total / (dimension * n)))


class FitEvaluator:
    """
    Fit a model on correspondences and report its residuals.

        report = FitEvaluator(Helmert2D()).evaluate(src, dst)
        if report is not None:
            print(report.rmse)
    """

    def __init__(self, model: TransformModel) -> None:
        self.model = model

    def evaluate(self, source: PointsLike, target: PointsLike) -> Optional[FitReport]:
        """Compute the model, then its residuals. None if compute() fails."""
        if not self.model.compute(source, target):
            return None

        dim = self.model.dimension
        src = as_points(source, dim)
        dst = as_points(target, dim)
        res = residuals(self.model, src, dst)

        scale = float(np.max(np.abs(dst))) if dst.size else 1.0
        min_pts = self.model.minimum_points()
        value = root_mean_square_error(res, dim, min_pts, scale=scale)
        logger.debug(f"{type(self.model).__name__} RMSE = {value:.6g} over {src.shape[0]} points")

        return FitReport(
            rmse=value,
            residuals=res,
            n_points=int(src.shape[0]),
            degrees_of_freedom=max(0, dim * (src.shape[0] - min_pts)),
        )

    # alias matching TransformModel.rmse
    rmse = evaluate


def rmse(model: TransformModel, source: PointsLike, target: PointsLike) -> tuple[float, FloatArray]:
    """
    Fit `model` and return (rmse, squared residuals).

    Raises FitError if the model cannot be computed from the correspondences.
    """
    report = FitEvaluator(model).evaluate(source, target)
    if report is None:
        raise FitError(f"{type(model).__name__} could not be computed from the given points")
    return report.rmse, report.residuals
