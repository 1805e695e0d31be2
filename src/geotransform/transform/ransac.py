"""
Generic RANSAC loop over any TransformModel.

RANSAC overview:
- Randomly sample a *minimal* subset of correspondences
- Fit a candidate model from that subset (model.compute)
- Score all correspondences by their Euclidean residual
- Mark inliers where error < tau
- Keep the model with the most inliers (ties broken by lower RMS error)
- Refit using all inliers (least squares) to get the final model

The model is supplied as a factory (a class or any zero-argument callable
returning a fresh model), so each hypothesis owns its coefficients.
"""
from __future__ import annotations

from typing import Callable, Optional, TypeVar
import logging
import os

import numpy as np

from ..types import FloatArray, Mask, PointsLike, RansacResult, as_points
from .base import TransformModel
from .evaluate import residuals

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=TransformModel)
_RANSAC_DEBUG = os.environ.get("GEOTRANSFORM_RANSAC_DEBUG", "0") == "1"


def _required_iter_for_confidence(
        *,
        p_all_inliers: float,
        inlier_ratio: float,
        sample_size: int,
) -> int:
    """
    Number of iterations k so that the probability of having drawn at least
    ONE all-inlier minimal sample is >= p_all_inliers.

    With inlier ratio w and minimal sample size s:
     - P(sample all inliers)          = w^s
     - P(k samples, none all inliers) = (1 - w^s)^k
     - 1 - (1 - w^s)^k >= p   =>   k >= log(1 - p) / log(1 - w^s)

    Edge cases:
     - w == 0  -> impossible, return a huge count (capped by max_iters)
     - w == 1  -> 1 iteration is enough
    """
    # Clamp inputs to avoid log(0)
    p = float(np.clip(p_all_inliers, 1e-12, 1.0 - 1e-12))
    w = float(np.clip(inlier_ratio, 0.0, 1.0))
    s = int(sample_size)

    if s <= 0:
        raise ValueError("sample_size must be >= 1")

    if w >= 1.0:
        return 1

    if w <= 0.0:
        return int(1e9)

    # If w^s is extremely tiny, log(1 - w^s) is close to 0
    w_to_s = float(np.clip(w ** s, 1e-12, 1.0 - 1e-12))

    k = int(np.ceil(np.log(1 - p) / np.log(1 - w_to_s)))
    return max(1, k)


def _errors(model: TransformModel, src: FloatArray, dst: FloatArray) -> FloatArray:
    # Euclidean distance per correspondence; non-finite mappings never count as inliers
    err = np.sqrt(residuals(model, src, dst))
    return np.where(np.isfinite(err), err, np.inf)


def ransac(
        model_factory: Callable[[], M],
        source: PointsLike,
        target: PointsLike,
        *,
        tau: float = 3.0,
        max_iters: int = 2000,
        confidence: float = 0.99,
        seed: Optional[int] = 0,
) -> Optional[RansacResult[M]]:
    """
    Run RANSAC to fit a model between source -> target.

    Inputs:
    - model_factory: builds a fresh, unfitted model (e.g. Affine2D)
    - source, target: (N, dim) corresponding points (same N)
    - tau: inlier threshold on the Euclidean residual (target units)
    - max_iters: upper bound of number of RANSAC iterations
    - confidence: desired probability of drawing one all-inlier sample
    - seed: RNG seed for reproducibility

    Returns:
    - RansacResult with best model + inlier mask, or None if it fails.
    """
    template = model_factory()
    dim = template.dimension
    min_samples = template.minimum_points()

    # ---------- Input validation ----------
    src = as_points(source, dim)
    dst = as_points(target, dim)
    if src.shape != dst.shape:
        raise ValueError(f"source and target must have same shape, got {src.shape} vs {dst.shape}")
    if tau <= 0:
        raise ValueError("tau must be > 0")
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must be in (0, 1)")

    n = src.shape[0]
    if n < min_samples:
        logger.error(f"RANSAC: {n} correspondences, {type(template).__name__} needs {min_samples}")
        return None

    rng = np.random.default_rng(seed)

    # Track the best hypothesis
    best_model: Optional[M] = None
    best_inliers: Optional[Mask] = None
    best_num_inliers = -1
    best_rms = float("inf")

    all_idx = np.arange(n)

    target_iters = max_iters
    iters_run = 0

    # ---------- Main RANSAC Loop ----------
    i = 0
    while i < max_iters and i < target_iters:
        iters_run = i + 1
        i += 1

        # Sample a minimal subset of correspondences (unique indices, no replacement)
        sample_idx = rng.choice(all_idx, size=min_samples, replace=False)

        model = model_factory()
        if not model.compute(src[sample_idx], dst[sample_idx]):
            continue

        err = _errors(model, src, dst)
        inliers: Mask = (err < tau)

        num_inliers = int(np.count_nonzero(inliers))
        if num_inliers < min_samples:
            continue

        inlier_err = err[inliers]
        rms = float(np.sqrt(np.mean(inlier_err * inlier_err)))

        # Primary criterion: more inliers. If tie: lower RMS error
        is_better = (num_inliers > best_num_inliers) or (
                num_inliers == best_num_inliers and rms < best_rms
        )

        if is_better:
            best_model = model
            best_inliers = inliers
            best_num_inliers = num_inliers
            best_rms = rms

            w = best_num_inliers / float(n)
            iter_needed = _required_iter_for_confidence(
                p_all_inliers=confidence,
                inlier_ratio=w,
                sample_size=min_samples,
            )
            target_iters = min(target_iters, max(iter_needed, iters_run))
            if _RANSAC_DEBUG:
                logger.info(f"[RANSAC] better model: inliers={best_num_inliers}/{n}, "
                            f"w={w:.3f}, target_iters={target_iters}")

    if best_model is None or best_inliers is None:
        logger.warning(f"RANSAC: no {type(template).__name__} reached {min_samples} inliers "
                       f"after {iters_run} iterations")
        return None

    # Refit on all inliers; fall back to the best minimal model if that fails
    refit = model_factory()
    final_model = refit if refit.compute(src[best_inliers], dst[best_inliers]) else best_model

    final_err = _errors(final_model, src, dst)[best_inliers]
    final_rms = float(np.sqrt(np.mean(final_err * final_err)))

    logger.debug(f"RANSAC: {best_num_inliers}/{n} inliers, rms={final_rms:.4g}, iterations={iters_run}")

    return RansacResult(
        model=final_model,
        inliers=best_inliers,
        num_inliers=int(np.count_nonzero(best_inliers)),
        rms_error=final_rms,
        iterations=iters_run,
        threshold=float(tau),
    )
