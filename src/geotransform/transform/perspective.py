"""
Perspective transform estimated robustly by OpenCV.

Same mapping as Projective2D (p' ~ H p) but the fit is delegated to
cv2.findHomography, which runs its own RANSAC / LMEDS loop and reports the
inlier mask.
"""

from __future__ import annotations

from typing import Any, Optional
import logging

import cv2
import numpy as np

from ..exceptions import DegenerateTransformError
from ..types import Mask, Mat3x3, Points, is_valid_mat3x3
from .base import Transform2D, TransformType
from .projective import apply_homography, normalize_homography

logger = logging.getLogger(__name__)

_METHODS = {
    "ransac": cv2.RANSAC,
    "lmeds": cv2.LMEDS,
    "least_squares": 0,
}


class Perspective(Transform2D):
    """
    Homography H with a cached inverse.

    reproj_threshold:
      maximum reprojection error (target units) for a correspondence to count
      as an inlier, used by the "ransac" method
    method:
      "ransac" (default), "lmeds" or "least_squares"
    """

    transform_type = TransformType.perspective
    _min_points = 4

    def __init__(
        self,
        H: Optional[np.ndarray] = None,
        reproj_threshold: float = 3.0,
        method: str = "ransac",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if method not in _METHODS:
            raise ValueError(f"Unknown method {method!r}, expected one of {sorted(_METHODS)}")
        self.reproj_threshold = float(reproj_threshold)
        self.method = method
        # inlier mask of the last compute(), None before any fit
        self.inliers: Optional[Mask] = None
        self._set_matrix(np.eye(3) if H is None else H)

    def _set_matrix(self, H: np.ndarray) -> None:
        H = np.asarray(H, dtype=np.float64)
        if H.shape != (3, 3):
            raise ValueError(f"Expected a (3,3) matrix, got {H.shape}")
        self._H = H.copy()
        self._H_inv = None
        if not is_valid_mat3x3(H) or abs(np.linalg.det(H)) == 0.0:
            logger.error("Perspective: singular matrix, inverse unavailable")
            return
        H_inv = np.linalg.inv(H)
        self._H_inv = normalize_homography(H_inv) if H_inv[2, 2] != 0.0 else H_inv

    def parameters(self) -> dict[str, Any]:
        return {"H": self._H.copy()}

    def _options(self) -> dict[str, Any]:
        opts = super()._options()
        opts.update(reproj_threshold=self.reproj_threshold, method=self.method)
        return opts

    def matrix(self) -> Mat3x3:
        return self._H.copy()

    # ---------- Estimation ----------
    def _estimate(self, src: Points, dst: Points) -> bool:
        try:
            H, mask = cv2.findHomography(
                src.astype(np.float32),
                dst.astype(np.float32),
                _METHODS[self.method],
                self.reproj_threshold,
            )
        except cv2.error as e:
            logger.error(f"Perspective: findHomography failed: {e}")
            return False

        if H is None or not is_valid_mat3x3(H):
            logger.error("Perspective: findHomography returned no matrix")
            return False

        self._set_matrix(H)
        if mask is not None:
            self.inliers = mask.reshape(-1).astype(bool)
        else:
            self.inliers = np.ones(src.shape[0], dtype=bool)

        logger.debug(f"Perspective inliers: {int(self.inliers.sum())}/{src.shape[0]}")
        return True

    # ---------- Application ----------
    def _forward(self, pts: Points) -> Points:
        return apply_homography(self._H, pts)

    def _backward(self, pts: Points) -> Points:
        return apply_homography(self._H_inv, pts)

    def is_invertible(self) -> bool:
        return self._H_inv is not None

    def inverse(self) -> "Perspective":
        if self._H_inv is None:
            raise DegenerateTransformError("Perspective matrix is singular")
        return Perspective(self._H_inv, **self._options())

    def is_identity(self) -> bool:
        return bool(np.array_equal(self._H, np.eye(3)))
