"""
Helmert 3D (7-parameter similarity) transform.

    p' = scale * R @ p + t

R is built from three angles with the x-y-z convention:

    R = Rx(omega) @ Ry(phi) @ Rz(kappa)

Estimation:
1. Closed-form initial value (centroids + SVD of the cross-covariance, with a
   guard against reflections).
2. Gauss-Newton refinement. Each step linearizes around the current
   (scale, R, t) and solves a 3n x 7 system for
   (d_scale, d_rot[3], d_t[3]) through the model's linear solver:

       J_i = [ R p_i  |  -scale * [R p_i]x  |  I ]

   where [v]x is the cross-product matrix of v. The rotation update is
   R <- Rodrigues(d_rot) @ R.
"""

from __future__ import annotations

import math
from typing import Any, Optional
import logging

import cv2
import numpy as np

from ..exceptions import DegenerateTransformError
from ..types import FloatArray, Mat3x3, Points, Points3D
from .base import Transform3D, TransformType

logger = logging.getLogger(__name__)


def rotation_matrix_xyz(omega: float, phi: float, kappa: float) -> Mat3x3:
    """
    Rotation matrix from angles in radians, R = Rx(omega) @ Ry(phi) @ Rz(kappa).
    """
    co, so = np.cos(omega), np.sin(omega)
    cp, sp = np.cos(phi), np.sin(phi)
    ck, sk = np.cos(kappa), np.sin(kappa)

    # Rotation about X (omega)
    Rx = np.array([
        [1, 0, 0],
        [0, co, -so],
        [0, so, co]
    ], dtype=np.float64)

    # Rotation about Y (phi)
    Ry = np.array([
        [cp, 0, sp],
        [0, 1, 0],
        [-sp, 0, cp]
    ], dtype=np.float64)

    # Rotation about Z (kappa)
    Rz = np.array([
        [ck, -sk, 0],
        [sk, ck, 0],
        [0, 0, 1]
    ], dtype=np.float64)

    return Rx @ Ry @ Rz


def angles_from_rotation_matrix(R: Mat3x3) -> tuple[float, float, float]:
    """
    Inverse of rotation_matrix_xyz: (omega, phi, kappa) in radians.

    At gimbal lock (|R[0,2]| == 1) kappa is set to 0 and the whole rotation
    about the first/last axis goes into omega.
    """
    phi = math.asin(float(np.clip(R[0, 2], -1.0, 1.0)))
    if abs(R[0, 2]) < 1.0:
        omega = math.atan2(-R[1, 2], R[2, 2])
        kappa = math.atan2(-R[0, 1], R[0, 0])
    else:
        omega = math.atan2(R[2, 1], R[1, 1])
        kappa = 0.0
    return omega, phi, kappa


def validate_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """
    A proper rotation matrix is orthogonal (R @ R.T = I) with det(R) = +1.
    """
    if R.shape != (3, 3):
        return False
    if not np.allclose(R @ R.T, np.eye(3), atol=tol):
        return False
    return bool(np.isclose(np.linalg.det(R), 1.0, atol=tol))


def _skew(v: FloatArray) -> Mat3x3:
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ], dtype=np.float64)


def similarity_closed_form(src: Points3D, dst: Points3D) -> Optional[tuple[float, Mat3x3, FloatArray]]:
    """
    Least squares similarity (scale, R, t) with dst ≈ scale * R @ src + t.

    Returns None when the centered source points span less than a plane.
    """
    mu_s = src.mean(axis=0)
    mu_d = dst.mean(axis=0)
    xs = src - mu_s
    xd = dst - mu_d

    sv = np.linalg.svd(xs, compute_uv=False)
    if sv[0] == 0.0 or sv[1] <= sv[0] * 1e-10:
        return None

    n = src.shape[0]
    sigma = xd.T @ xs / n
    U, D, Vt = np.linalg.svd(sigma)

    S = np.eye(3)
    if np.linalg.det(U) * np.linalg.det(Vt) < 0:
        S[2, 2] = -1.0

    R = U @ S @ Vt
    var_s = float(np.sum(xs * xs) / n)
    scale = float(np.trace(np.diag(D) @ S) / var_s)
    t = mu_d - scale * R @ mu_s
    return scale, R, t


class Helmert3D(Transform3D):
    """
    7-parameter 3D similarity transform.

    Parameters: tx, ty, tz, scale, omega, phi, kappa (radians).
    The rotation matrix is rebuilt on every parameter change.

    max_iterations / tolerance:
      Gauss-Newton stopping rules (step norm below tolerance)
    """

    transform_type = TransformType.helmert_3d
    _min_points = 3

    def __init__(
        self,
        tx: float = 0.0,
        ty: float = 0.0,
        tz: float = 0.0,
        scale: float = 1.0,
        omega: float = 0.0,
        phi: float = 0.0,
        kappa: float = 0.0,
        *,
        max_iterations: int = 10,
        tolerance: float = 1e-12,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if max_iterations < 0:
            raise ValueError("max_iterations must be >= 0")
        self.max_iterations = int(max_iterations)
        self.tolerance = float(tolerance)
        self._t = np.array([tx, ty, tz], dtype=np.float64)
        self._scale = float(scale)
        self._omega = float(omega)
        self._phi = float(phi)
        self._kappa = float(kappa)
        self._update()

    @classmethod
    def from_rotation_matrix(
        cls,
        R: np.ndarray,
        translation: Any = (0.0, 0.0, 0.0),
        scale: float = 1.0,
        **kwargs: Any,
    ) -> "Helmert3D":
        R = np.asarray(R, dtype=np.float64)
        if not validate_rotation_matrix(R):
            raise ValueError("R is not a proper rotation matrix")
        omega, phi, kappa = angles_from_rotation_matrix(R)
        tx, ty, tz = np.asarray(translation, dtype=np.float64).reshape(3)
        return cls(tx, ty, tz, scale, omega, phi, kappa, **kwargs)

    def _update(self) -> None:
        self._R = rotation_matrix_xyz(self._omega, self._phi, self._kappa)

    # ---------- Parameters ----------
    @property
    def tx(self) -> float:
        return float(self._t[0])

    @property
    def ty(self) -> float:
        return float(self._t[1])

    @property
    def tz(self) -> float:
        return float(self._t[2])

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def omega(self) -> float:
        return self._omega

    @property
    def phi(self) -> float:
        return self._phi

    @property
    def kappa(self) -> float:
        return self._kappa

    def rotation_matrix(self) -> Mat3x3:
        return self._R.copy()

    def translation(self) -> FloatArray:
        return self._t.copy()

    def set_parameters(self, tx: float, ty: float, tz: float, scale: float,
                       omega: float, phi: float, kappa: float) -> None:
        self._t = np.array([tx, ty, tz], dtype=np.float64)
        self._scale = float(scale)
        self._omega = float(omega)
        self._phi = float(phi)
        self._kappa = float(kappa)
        self._update()

    def set_rotation(self, omega: float, phi: float, kappa: float) -> None:
        self._omega, self._phi, self._kappa = float(omega), float(phi), float(kappa)
        self._update()

    def set_scale(self, scale: float) -> None:
        self._scale = float(scale)

    def set_translation(self, tx: float, ty: float, tz: float) -> None:
        self._t = np.array([tx, ty, tz], dtype=np.float64)

    def parameters(self) -> dict[str, Any]:
        return {
            "tx": self.tx, "ty": self.ty, "tz": self.tz,
            "scale": self._scale,
            "omega": self._omega, "phi": self._phi, "kappa": self._kappa,
        }

    def _options(self) -> dict[str, Any]:
        opts = super()._options()
        opts.update(max_iterations=self.max_iterations, tolerance=self.tolerance)
        return opts

    def matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix [[s*R, t], [0, 1]]."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self._scale * self._R
        T[:3, 3] = self._t
        return T

    # ---------- Estimation ----------
    def _estimate(self, src: Points, dst: Points) -> bool:
        init = similarity_closed_form(src, dst)
        if init is None:
            logger.error("Helmert3D: source points are collinear")
            return False
        scale, R, t = init

        n = src.shape[0]
        for it in range(self.max_iterations):
            rp = src @ R.T                                # (n,3) rotated points
            residual = (dst - (scale * rp + t)).reshape(-1)

            J = np.zeros((3 * n, 7), dtype=np.float64)
            for i in range(n):
                rows = slice(3 * i, 3 * i + 3)
                J[rows, 0] = rp[i]
                J[rows, 1:4] = -scale * _skew(rp[i])
                J[rows, 4:7] = np.eye(3)

            solution = self._solve(J, residual)
            if solution is None:
                return False

            dx = solution.x
            scale += float(dx[0])
            dR, _ = cv2.Rodrigues(dx[1:4].reshape(3, 1))
            R = dR @ R
            t = t + dx[4:7]

            step = float(np.linalg.norm(dx))
            logger.debug(f"Helmert3D iteration {it + 1}: step={step:.3e}")
            if step < self.tolerance:
                break

        if not (np.isfinite(scale) and np.isfinite(R).all() and np.isfinite(t).all()):
            logger.error("Helmert3D: estimation produced non-finite parameters")
            return False

        omega, phi, kappa = angles_from_rotation_matrix(R)
        self.set_parameters(t[0], t[1], t[2], scale, omega, phi, kappa)
        return True

    # ---------- Application ----------
    def _forward(self, pts: Points) -> Points:
        return self._scale * (pts @ self._R.T) + self._t

    def _backward(self, pts: Points) -> Points:
        return ((pts - self._t) @ self._R) / self._scale

    def is_invertible(self) -> bool:
        return self._scale != 0.0 and bool(np.isfinite(self._scale))

    def inverse(self) -> "Helmert3D":
        if not self.is_invertible():
            raise DegenerateTransformError("Helmert3D with zero scale has no inverse")
        inv_scale = 1.0 / self._scale
        R_inv = self._R.T
        t_inv = -inv_scale * (R_inv @ self._t)
        return Helmert3D.from_rotation_matrix(R_inv, t_inv, inv_scale, **self._options())

    def is_identity(self) -> bool:
        return (not self._t.any() and self._scale == 1.0
                and self._omega == 0.0 and self._phi == 0.0 and self._kappa == 0.0)
