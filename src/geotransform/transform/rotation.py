"""
Pure rotation about the origin.

    x' = x*cos(θ) - y*sin(θ)
    y' = x*sin(θ) + y*cos(θ)
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..types import Points
from .base import Transform2D, TransformType


class Rotation(Transform2D):
    """
    Planar rotation by `angle` radians (counter-clockwise).

    Cached coefficients r1 = cos(angle), r2 = sin(angle) are refreshed on
    every angle change.
    """

    transform_type = TransformType.rotation
    _min_points = 1

    def __init__(self, angle: float = 0.0, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._angle = float(angle)
        self._update()

    def _update(self) -> None:
        self._r1 = math.cos(self._angle)
        self._r2 = math.sin(self._angle)

    @property
    def angle(self) -> float:
        return self._angle

    def set_angle(self, angle: float) -> None:
        self._angle = float(angle)
        self._update()

    def parameters(self) -> dict[str, Any]:
        return {"angle": self._angle}

    def matrix(self) -> np.ndarray:
        """2x2 rotation matrix."""
        return np.array([[self._r1, -self._r2],
                         [self._r2, self._r1]], dtype=np.float64)

    def _estimate(self, src: Points, dst: Points) -> bool:
        # Unknowns (r1, r2), 2 rows per point:
        #   x' = r1*x - r2*y
        #   y' = r2*x + r1*y
        n = src.shape[0]
        A = np.zeros((2 * n, 2), dtype=np.float64)
        A[0::2, 0] = src[:, 0]
        A[0::2, 1] = -src[:, 1]
        A[1::2, 0] = src[:, 1]
        A[1::2, 1] = src[:, 0]
        b = dst.reshape(-1)

        solution = self._solve(A, b)
        if solution is None:
            return False

        r1, r2 = solution.x
        # (r1, r2) absorbs any scale difference; keep only the direction
        self.set_angle(math.atan2(r2, r1))
        return True

    def _forward(self, pts: Points) -> Points:
        return pts @ self.matrix().T

    def _backward(self, pts: Points) -> Points:
        return pts @ self.matrix()

    def inverse(self) -> "Rotation":
        return Rotation(-self._angle, **self._options())

    def is_identity(self) -> bool:
        return self._angle == 0.0

    def to_helmert2d(self):
        from .helmert2d import Helmert2D
        return Helmert2D(0.0, 0.0, 1.0, self._angle, **self._options())

    def to_affine(self):
        from .affine import Affine2D
        return Affine2D(0.0, 0.0, 1.0, 1.0, self._angle, **self._options())
