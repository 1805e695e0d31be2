"""
Affine model (3x3 homogeneous form).

We estimate an affine transform T such that:

    [x', y', 1]^T  ≈  T @ [x, y, 1]^T

where:

    T = [[a, b, tx],
         [c, d, ty],
         [0, 0,  1]]

Unknowns are 6 parameters: a, b, c, d, tx, ty.

Built from interpretable parameters (scale_x, scale_y, rotation):

    a =  scale_x * cos(rotation)     b = -scale_y * sin(rotation)
    c =  scale_x * sin(rotation)     d =  scale_y * cos(rotation)

so that scale_x == scale_y reduces to a Helmert 2D transform.
"""

from __future__ import annotations

import math
from typing import Any
import logging

import numpy as np

from ..exceptions import DegenerateTransformError
from ..types import FloatArray, Mat3x3, Points, Points2D, is_valid_mat3x3
from .base import Transform2D, TransformType

logger = logging.getLogger(__name__)


# ---------- Degeneracy Check Helpers ----------
def _triangle_area(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
    """
    Return 2x the triangle area formed by (p1, p2, p3).

        area2 = |(p2 - p1) x (p3 - p1)|

    If area2 is near 0, the three points are collinear (degenerate for affine fit).
    """
    u = p2 - p1
    v = p3 - p1

    # In 2D, "cross product magnitude" is a scalar
    return float(abs(u[0] * v[1] - u[1] * v[0]))


def is_collinear(pts: Points2D, eps: float = 1e-9) -> bool:
    """
    Check whether a point set is (nearly) collinear.

    Uses the largest triangle spanned by the first point, the farthest point
    from it and any third point. The doubled area is compared with
    eps * max_dist**2 so the test does not depend on coordinate units.
    """
    if pts.shape[0] < 3:
        return True
    p0 = pts[0]
    dists = np.linalg.norm(pts - p0, axis=1)
    far = int(np.argmax(dists))
    max_dist = float(dists[far])
    if max_dist == 0.0:
        return True
    areas = [_triangle_area(p0, pts[far], p) for p in pts]
    return max(areas) < eps * max_dist ** 2


def _theta_to_mat3x3(theta: FloatArray) -> Mat3x3:
    """
    Convert parameter vector theta = [a, b, c, d, tx, ty] into a 3x3 affine matrix.
    """
    a, b, c, d, tx, ty = map(float, theta.tolist())
    T = np.array(
        [
            [a, b, tx],
            [c, d, ty],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )
    return T


def _mean_angle(t1: float, t2: float) -> float:
    # average on the circle so that angles near ±pi do not cancel out
    return math.atan2(math.sin(t1) + math.sin(t2), math.cos(t1) + math.cos(t2))


class Affine2D(Transform2D):
    """
    General 2D affine transform:

        x' = a*x + b*y + tx
        y' = c*x + d*y + ty

    The inverse coefficients (ai, bi, ci, di, txi, tyi) are computed once per
    parameter update, never per transformed point.
    """

    transform_type = TransformType.affine
    _min_points = 3

    def __init__(
        self,
        tx: float = 0.0,
        ty: float = 0.0,
        scale_x: float = 1.0,
        scale_y: float = 1.0,
        rotation: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._tx = float(tx)
        self._ty = float(ty)
        self._scale_x = float(scale_x)
        self._scale_y = float(scale_y)
        self._rotation = float(rotation)
        self._update()

    @classmethod
    def from_coefficients(
        cls, a: float, b: float, c: float, d: float, tx: float, ty: float, **kwargs: Any
    ) -> "Affine2D":
        trf = cls(**kwargs)
        trf.set_coefficients(a, b, c, d, tx, ty)
        return trf

    @classmethod
    def from_matrix(cls, T: np.ndarray, **kwargs: Any) -> "Affine2D":
        """Build from a 2x3 or 3x3 (last row [0, 0, 1]) matrix."""
        T = np.asarray(T, dtype=np.float64)
        if T.shape not in ((2, 3), (3, 3)):
            raise ValueError(f"Expected a (2,3) or (3,3) matrix, got {T.shape}")
        return cls.from_coefficients(T[0, 0], T[0, 1], T[1, 0], T[1, 1], T[0, 2], T[1, 2], **kwargs)

    # ---------- Coefficient cache ----------
    def _update(self) -> None:
        s, c = math.sin(self._rotation), math.cos(self._rotation)
        self._a = self._scale_x * c
        self._b = -self._scale_y * s
        self._c = self._scale_x * s
        self._d = self._scale_y * c
        self._update_inverse()

    def _update_inverse(self) -> None:
        a, b, c, d = self._a, self._b, self._c, self._d
        tx, ty = self._tx, self._ty
        det = a * d - c * b
        if det == 0.0 or not math.isfinite(det):
            logger.error("Affine2D: determinant null, inverse unavailable")
            self._invertible = False
            self._ai = self._bi = self._ci = self._di = self._txi = self._tyi = math.nan
            return
        self._invertible = True
        self._ai = d / det
        self._bi = -b / det
        self._ci = -c / det
        self._di = a / det
        self._txi = (-d * tx + b * ty) / det
        self._tyi = (-a * ty + c * tx) / det

    def _derive_interpretable(self) -> None:
        a, b, c, d = self._a, self._b, self._c, self._d
        self._rotation = _mean_angle(math.atan2(c, a), math.atan2(-b, d))
        self._scale_x = math.hypot(a, c)
        self._scale_y = math.hypot(b, d)

    # ---------- Parameters ----------
    @property
    def tx(self) -> float:
        return self._tx

    @property
    def ty(self) -> float:
        return self._ty

    @property
    def scale_x(self) -> float:
        return self._scale_x

    @property
    def scale_y(self) -> float:
        return self._scale_y

    @property
    def rotation(self) -> float:
        return self._rotation

    def coefficients(self) -> tuple[float, float, float, float, float, float]:
        """(a, b, c, d, tx, ty)"""
        return self._a, self._b, self._c, self._d, self._tx, self._ty

    def determinant(self) -> float:
        return self._a * self._d - self._c * self._b

    def set_parameters(
        self, tx: float, ty: float, scale_x: float, scale_y: float, rotation: float
    ) -> None:
        self._tx = float(tx)
        self._ty = float(ty)
        self._scale_x = float(scale_x)
        self._scale_y = float(scale_y)
        self._rotation = float(rotation)
        self._update()

    def set_coefficients(
        self, a: float, b: float, c: float, d: float, tx: float, ty: float
    ) -> None:
        self._a, self._b, self._c, self._d = float(a), float(b), float(c), float(d)
        self._tx, self._ty = float(tx), float(ty)
        self._derive_interpretable()
        self._update_inverse()

    def set_rotation(self, rotation: float) -> None:
        self._rotation = float(rotation)
        self._update()

    def set_scale_x(self, scale_x: float) -> None:
        self._scale_x = float(scale_x)
        self._update()

    def set_scale_y(self, scale_y: float) -> None:
        self._scale_y = float(scale_y)
        self._update()

    def set_translation(self, tx: float, ty: float) -> None:
        self._tx = float(tx)
        self._ty = float(ty)
        self._update_inverse()

    def parameters(self) -> dict[str, Any]:
        return {
            "tx": self._tx, "ty": self._ty,
            "scale_x": self._scale_x, "scale_y": self._scale_y,
            "rotation": self._rotation,
        }

    def with_parameters(self, **changes: Any) -> "Affine2D":
        # coefficients are authoritative: a sheared model must survive a
        # change of its translation alone
        if set(changes) <= {"tx", "ty"}:
            trf = Affine2D.from_coefficients(*self.coefficients(), **self._options())
            trf.set_translation(changes.get("tx", self._tx), changes.get("ty", self._ty))
            return trf
        return super().with_parameters(**changes)

    def matrix(self) -> Mat3x3:
        return _theta_to_mat3x3(np.array(self.coefficients()))

    # ---------- Estimation ----------
    def _estimate(self, src: Points, dst: Points) -> bool:
        # Build a linear system A theta = b with 6 unknowns:
        #   theta = [a, b, c, d, tx, ty]^T
        # For each correspondence (x, y) -> (x', y'):
        #   x' = a*x + b*y + tx   ->  [x, y, 0, 0, 1, 0]
        #   y' = c*x + d*y + ty   ->  [0, 0, x, y, 0, 1]
        if self.strict and is_collinear(src):
            logger.error("Affine2D: source points are collinear")
            return False

        n = src.shape[0]
        A = np.zeros((2 * n, 6), dtype=np.float64)
        b_vec = np.zeros((2 * n,), dtype=np.float64)

        for i in range(n):
            x, y = float(src[i, 0]), float(src[i, 1])
            x_prime, y_prime = float(dst[i, 0]), float(dst[i, 1])

            A[2 * i + 0, :] = [x, y, 0.0, 0.0, 1.0, 0.0]
            b_vec[2 * i + 0] = x_prime

            A[2 * i + 1, :] = [0.0, 0.0, x, y, 0.0, 1.0]
            b_vec[2 * i + 1] = y_prime

        solution = self._solve(A, b_vec)
        if solution is None:
            return False

        T = _theta_to_mat3x3(solution.x)
        if not is_valid_mat3x3(T):
            logger.error("Affine2D: solve produced non-finite coefficients")
            return False

        self.set_coefficients(T[0, 0], T[0, 1], T[1, 0], T[1, 1], T[0, 2], T[1, 2])
        return True

    # ---------- Application ----------
    def _forward(self, pts: Points) -> Points:
        x, y = pts[:, 0], pts[:, 1]
        return np.column_stack([
            self._a * x + self._b * y + self._tx,
            self._c * x + self._d * y + self._ty,
        ])

    def _backward(self, pts: Points) -> Points:
        x, y = pts[:, 0], pts[:, 1]
        return np.column_stack([
            self._ai * x + self._bi * y + self._txi,
            self._ci * x + self._di * y + self._tyi,
        ])

    def is_invertible(self) -> bool:
        return self._invertible

    def inverse(self) -> "Affine2D":
        if not self._invertible:
            raise DegenerateTransformError("Affine2D with null determinant has no inverse")
        return Affine2D.from_coefficients(
            self._ai, self._bi, self._ci, self._di, self._txi, self._tyi, **self._options()
        )

    def is_identity(self) -> bool:
        return self.coefficients() == (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
