"""
Translation-only model.

Assume: every point moves by the same displacement.
    target ≈ source + t
    t = (tx, ty)

This model has only 2 degrees of freedom and needs a single correspondence.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..types import Mat3x3, Points
from .base import Transform2D, TransformType


def make_translation_matrix(tx: float, ty: float) -> Mat3x3:
    """
    3x3 homogeneous matrix of a pure translation:

        [ 1   0   tx ]
        [ 0   1   ty ]
        [ 0   0    1 ]
    """
    T = np.eye(3, dtype=np.float64)
    T[0, 2] = tx
    T[1, 2] = ty
    return T


class Translation(Transform2D):
    """
    2D translation:

        x' = x + tx
        y' = y + ty
    """

    transform_type = TransformType.translation
    _min_points = 1

    def __init__(self, tx: float = 0.0, ty: float = 0.0, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._tx = float(tx)
        self._ty = float(ty)

    @property
    def tx(self) -> float:
        return self._tx

    @property
    def ty(self) -> float:
        return self._ty

    def set_parameters(self, tx: float, ty: float) -> None:
        self._tx = float(tx)
        self._ty = float(ty)

    def parameters(self) -> dict[str, Any]:
        return {"tx": self._tx, "ty": self._ty}

    def matrix(self) -> Mat3x3:
        return make_translation_matrix(self._tx, self._ty)

    # Least squares estimate
    def _estimate(self, src: Points, dst: Points) -> bool:
        """
        Each correspondence gives 2 rows:

            [1 0] [tx]   [x' - x]
            [0 1] [ty] = [y' - y]

        The least squares solution is the mean displacement.
        """
        n = src.shape[0]
        A = np.zeros((2 * n, 2), dtype=np.float64)
        A[0::2, 0] = 1.0
        A[1::2, 1] = 1.0
        b = (dst - src).reshape(-1)

        solution = self._solve(A, b)
        if solution is None:
            return False

        self.set_parameters(solution.x[0], solution.x[1])
        return True

    def _forward(self, pts: Points) -> Points:
        return pts + np.array([self._tx, self._ty], dtype=np.float64)

    def _backward(self, pts: Points) -> Points:
        return pts - np.array([self._tx, self._ty], dtype=np.float64)

    def inverse(self) -> "Translation":
        return Translation(-self._tx, -self._ty, **self._options())

    def is_identity(self) -> bool:
        return self._tx == 0.0 and self._ty == 0.0

    def to_helmert2d(self):
        from .helmert2d import Helmert2D
        return Helmert2D(self._tx, self._ty, 1.0, 0.0, **self._options())

    def to_affine(self):
        from .affine import Affine2D
        return Affine2D(self._tx, self._ty, 1.0, 1.0, 0.0, **self._options())
