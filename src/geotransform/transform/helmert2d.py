"""
Helmert 2D (similarity) transform: uniform scale + rotation + translation.

    x' = a*x - b*y + tx
    y' = b*x + a*y + ty

with
    a = scale * cos(rotation)
    b = scale * sin(rotation)

Unknowns for estimation: a, b, tx, ty (4), so 2 correspondences are enough.
"""

from __future__ import annotations

import math
from typing import Any
import logging

import numpy as np

from ..exceptions import DegenerateTransformError
from ..types import Mat3x3, Points
from .base import Transform2D, TransformType

logger = logging.getLogger(__name__)


class Helmert2D(Transform2D):
    """
    Similarity transform.

    Primary parameters: tx, ty, scale, rotation (radians).
    Derived (cached, refreshed on every parameter change):
        a, b                      forward coefficients
        ai, bi, txi, tyi          inverse coefficients
    """

    transform_type = TransformType.helmert_2d
    _min_points = 2

    def __init__(
        self,
        tx: float = 0.0,
        ty: float = 0.0,
        scale: float = 1.0,
        rotation: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._tx = float(tx)
        self._ty = float(ty)
        self._scale = float(scale)
        self._rotation = float(rotation)
        self._update()

    # ---------- Coefficient cache ----------
    def _update(self) -> None:
        self._a = self._scale * math.cos(self._rotation)
        self._b = self._scale * math.sin(self._rotation)
        self._update_inverse()

    def _update_inverse(self) -> None:
        a, b, tx, ty = self._a, self._b, self._tx, self._ty
        det = a * a + b * b
        if det == 0.0 or not math.isfinite(det):
            logger.error("Helmert2D: determinant null, inverse unavailable")
            self._invertible = False
            self._ai = self._bi = self._txi = self._tyi = math.nan
            return
        self._invertible = True
        self._ai = a / det
        self._bi = -b / det
        self._txi = (-a * tx - b * ty) / det
        self._tyi = (-a * ty + b * tx) / det

    # ---------- Parameters ----------
    @property
    def tx(self) -> float:
        return self._tx

    @property
    def ty(self) -> float:
        return self._ty

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def rotation(self) -> float:
        return self._rotation

    @property
    def a(self) -> float:
        return self._a

    @property
    def b(self) -> float:
        return self._b

    def set_parameters(self, tx: float, ty: float, scale: float, rotation: float) -> None:
        self._tx = float(tx)
        self._ty = float(ty)
        self._scale = float(scale)
        self._rotation = float(rotation)
        self._update()

    def set_scale(self, scale: float) -> None:
        self._scale = float(scale)
        self._update()

    def set_rotation(self, rotation: float) -> None:
        self._rotation = float(rotation)
        self._update()

    def set_translation(self, tx: float, ty: float) -> None:
        self._tx = float(tx)
        self._ty = float(ty)
        self._update_inverse()

    def parameters(self) -> dict[str, Any]:
        return {"tx": self._tx, "ty": self._ty, "scale": self._scale, "rotation": self._rotation}

    def matrix(self) -> Mat3x3:
        return np.array([[self._a, -self._b, self._tx],
                         [self._b, self._a, self._ty],
                         [0.0, 0.0, 1.0]], dtype=np.float64)

    # ---------- Estimation ----------
    def _estimate(self, src: Points, dst: Points) -> bool:
        # Unknown vector theta = [a, b, tx, ty]
        #   x' = a*x - b*y + tx   ->  [x, -y, 1, 0]
        #   y' = b*x + a*y + ty   ->  [y,  x, 0, 1]
        n = src.shape[0]
        A = np.zeros((2 * n, 4), dtype=np.float64)
        b_vec = np.zeros((2 * n,), dtype=np.float64)

        for i in range(n):
            x, y = src[i]
            A[2 * i + 0, :] = [x, -y, 1.0, 0.0]
            b_vec[2 * i + 0] = dst[i, 0]
            A[2 * i + 1, :] = [y, x, 0.0, 1.0]
            b_vec[2 * i + 1] = dst[i, 1]

        solution = self._solve(A, b_vec)
        if solution is None:
            return False

        a, b, tx, ty = map(float, solution.x)
        self._a, self._b = a, b
        self._tx, self._ty = tx, ty
        self._rotation = math.atan2(b, a)
        self._scale = math.hypot(a, b)
        self._update_inverse()
        return True

    # ---------- Application ----------
    def _forward(self, pts: Points) -> Points:
        x, y = pts[:, 0], pts[:, 1]
        return np.column_stack([
            self._a * x - self._b * y + self._tx,
            self._b * x + self._a * y + self._ty,
        ])

    def _backward(self, pts: Points) -> Points:
        x, y = pts[:, 0], pts[:, 1]
        return np.column_stack([
            self._ai * x - self._bi * y + self._txi,
            self._bi * x + self._ai * y + self._tyi,
        ])

    def is_invertible(self) -> bool:
        return self._invertible

    def inverse(self) -> "Helmert2D":
        if not self._invertible:
            raise DegenerateTransformError("Helmert2D with zero scale has no inverse")
        return Helmert2D(
            self._txi, self._tyi,
            math.hypot(self._ai, self._bi), math.atan2(self._bi, self._ai),
            **self._options(),
        )

    def is_identity(self) -> bool:
        return (self._tx == 0.0 and self._ty == 0.0
                and self._scale == 1.0 and self._rotation == 0.0)

    # ---------- Conversions ----------
    def to_affine(self):
        from .affine import Affine2D
        return Affine2D(self._tx, self._ty, self._scale, self._scale, self._rotation, **self._options())

    def to_translation(self):
        from .translation import Translation
        return Translation(self._tx, self._ty, **self._options())

    def to_rotation(self):
        from .rotation import Rotation
        return Rotation(self._rotation, **self._options())
