"""
Uniform scaling about the origin.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..exceptions import DegenerateTransformError
from ..types import Points
from .base import Transform2D, TransformType


class Scaling(Transform2D):
    """
        x' = s*x
        y' = s*y
    """

    transform_type = TransformType.scaling
    _min_points = 1

    def __init__(self, scale: float = 1.0, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._scale = float(scale)

    @property
    def scale(self) -> float:
        return self._scale

    def set_scale(self, scale: float) -> None:
        self._scale = float(scale)

    def parameters(self) -> dict[str, Any]:
        return {"scale": self._scale}

    def _estimate(self, src: Points, dst: Points) -> bool:
        # single unknown, one row per coordinate: [x] s = x'
        A = src.reshape(-1, 1)
        b = dst.reshape(-1)

        solution = self._solve(A, b)
        if solution is None:
            return False

        self.set_scale(solution.x[0])
        return True

    def _forward(self, pts: Points) -> Points:
        return pts * self._scale

    def _backward(self, pts: Points) -> Points:
        return pts / self._scale

    def is_invertible(self) -> bool:
        return self._scale != 0.0 and bool(np.isfinite(self._scale))

    def inverse(self) -> "Scaling":
        if not self.is_invertible():
            raise DegenerateTransformError("Scaling with zero scale has no inverse")
        return Scaling(1.0 / self._scale, **self._options())

    def is_identity(self) -> bool:
        return self._scale == 1.0

    def to_helmert2d(self):
        from .helmert2d import Helmert2D
        return Helmert2D(0.0, 0.0, self._scale, 0.0, **self._options())

    def to_affine(self):
        from .affine import Affine2D
        return Affine2D(0.0, 0.0, self._scale, self._scale, 0.0, **self._options())
