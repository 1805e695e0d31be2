"""
Projective (homography) model estimated by the direct linear transform.

    x' = (a*x + b*y + c) / (g*x + h*y + 1)
    y' = (d*x + e*y + f) / (g*x + h*y + 1)

Homography H (3x3) with H[2,2] fixed to 1:

    H = [[a, b, c],
         [d, e, f],
         [g, h, 1]]

Each correspondence (x, y) -> (X, Y) is linear in the 8 unknowns once the
denominator is multiplied out:

    a*x + b*y + c - g*x*X - h*y*X = X
    d*x + e*y + f - g*x*Y - h*y*Y = Y

so 4 correspondences (8 equations) are the minimum.

Source and target are normalized (centroid at the origin, mean distance
sqrt(2)) before the system is built, so `last_solution` describes the
normalized design.
"""

from __future__ import annotations

from typing import Any
import logging

import numpy as np

from ..exceptions import DegenerateTransformError
from ..types import Mat3x3, Points, Points2D, as_homogeneous, is_valid_mat3x3
from .base import Transform2D, TransformType

logger = logging.getLogger(__name__)

_COEFFICIENTS = ("a", "b", "c", "d", "e", "f", "g", "h")


def apply_homography(H: Mat3x3, pts: Points2D) -> Points2D:
    """
    Apply a 3x3 homography to (N,2) points.

    Points mapped onto the line at infinity (w == 0) come back as inf/nan;
    no exception is raised.
    """
    ph = as_homogeneous(pts)           # (N,3)
    mapped = ph @ H.T                  # (N,3)
    with np.errstate(divide="ignore", invalid="ignore"):
        return mapped[:, :2] / mapped[:, 2:3]


def normalize_homography(H: Mat3x3) -> Mat3x3:
    """Scale H so that H[2,2] == 1."""
    return H / H[2, 2]


def normalization_matrix(pts: Points2D) -> tuple[Points2D, Mat3x3]:
    """
    Similarity moving the centroid to the origin with mean distance sqrt(2).

    Returns (normalized_points, T). Without it the x*X columns of the design
    outgrow the constant ones by the square of the coordinate magnitude, which
    breaks rank detection for map-projected coordinates.
    """
    centroid = pts.mean(axis=0)
    shifted = pts - centroid
    mean_dist = float(np.mean(np.linalg.norm(shifted, axis=1)))
    scale = np.sqrt(2.0) / mean_dist if mean_dist > 0.0 else 1.0

    T = np.array([
        [scale, 0.0, -scale * centroid[0]],
        [0.0, scale, -scale * centroid[1]],
        [0.0, 0.0, 1.0],
    ])
    return shifted * scale, T


class Projective2D(Transform2D):
    """
    8-parameter planar projective transform.

    The inverse matrix is computed on every parameter update and normalized so
    that its [2,2] element is 1. A singular H (or an inverse with [2,2] == 0)
    marks the model as non-invertible.
    """

    transform_type = TransformType.projective
    _min_points = 4

    def __init__(
        self,
        a: float = 1.0, b: float = 0.0, c: float = 0.0,
        d: float = 0.0, e: float = 1.0, f: float = 0.0,
        g: float = 0.0, h: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._coeffs = np.array([a, b, c, d, e, f, g, h], dtype=np.float64)
        self._update()

    @classmethod
    def from_matrix(cls, H: np.ndarray, **kwargs: Any) -> "Projective2D":
        H = np.asarray(H, dtype=np.float64)
        if H.shape != (3, 3):
            raise ValueError(f"Expected a (3,3) matrix, got {H.shape}")
        if H[2, 2] == 0.0:
            raise ValueError("H[2,2] must be non-zero")
        Hn = normalize_homography(H)
        return cls(*Hn.reshape(-1)[:8], **kwargs)

    def _update(self) -> None:
        self._H = np.append(self._coeffs, 1.0).reshape(3, 3)
        self._H_inv = None
        if not np.isfinite(self._H).all():
            return
        try:
            H_inv = np.linalg.inv(self._H)
        except np.linalg.LinAlgError:
            logger.error("Projective2D: singular matrix, inverse unavailable")
            return
        if H_inv[2, 2] == 0.0:
            logger.error("Projective2D: inverse cannot be normalized")
            return
        self._H_inv = normalize_homography(H_inv)

    def set_parameters(self, a: float, b: float, c: float, d: float,
                       e: float, f: float, g: float, h: float) -> None:
        self._coeffs = np.array([a, b, c, d, e, f, g, h], dtype=np.float64)
        self._update()

    def parameters(self) -> dict[str, Any]:
        return {k: float(v) for k, v in zip(_COEFFICIENTS, self._coeffs)}

    def matrix(self) -> Mat3x3:
        return self._H.copy()

    def inverse_matrix(self) -> Mat3x3:
        if self._H_inv is None:
            raise DegenerateTransformError("Projective2D matrix is singular")
        return self._H_inv.copy()

    # ---------- Estimation ----------
    def _estimate(self, src: Points, dst: Points) -> bool:
        # solve in normalized coordinates, then map H back
        src_n, T_src = normalization_matrix(src)
        dst_n, T_dst = normalization_matrix(dst)

        n = src_n.shape[0]
        A = np.zeros((2 * n, 8), dtype=np.float64)
        b_vec = np.zeros((2 * n,), dtype=np.float64)

        x, y = src_n[:, 0], src_n[:, 1]
        X, Y = dst_n[:, 0], dst_n[:, 1]

        # rows for X
        A[0::2, 0] = x
        A[0::2, 1] = y
        A[0::2, 2] = 1.0
        A[0::2, 6] = -x * X
        A[0::2, 7] = -y * X
        b_vec[0::2] = X

        # rows for Y
        A[1::2, 3] = x
        A[1::2, 4] = y
        A[1::2, 5] = 1.0
        A[1::2, 6] = -x * Y
        A[1::2, 7] = -y * Y
        b_vec[1::2] = Y

        solution = self._solve(A, b_vec)
        if solution is None:
            return False

        H_n = np.append(solution.x, 1.0).reshape(3, 3)
        H = np.linalg.inv(T_dst) @ H_n @ T_src
        if not is_valid_mat3x3(H) or abs(H[2, 2]) < 1e-12:
            logger.error("Projective2D: solve produced an invalid homography")
            return False

        self.set_parameters(*normalize_homography(H).reshape(-1)[:8])
        return True

    # ---------- Application ----------
    def _forward(self, pts: Points) -> Points:
        return apply_homography(self._H, pts)

    def _backward(self, pts: Points) -> Points:
        return apply_homography(self._H_inv, pts)

    def is_invertible(self) -> bool:
        return self._H_inv is not None

    def inverse(self) -> "Projective2D":
        return Projective2D.from_matrix(self.inverse_matrix(), **self._options())

    def is_identity(self) -> bool:
        return bool(np.array_equal(self._H, np.eye(3)))
