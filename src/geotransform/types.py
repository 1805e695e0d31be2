"""
Shared typed primitives for the transform package.

Defines:
- Typed NumPy aliases for geometry
    - Point arrays are (N,2) or (N,3) float arrays
    - Homogeneous transforms are 3x3 / 4x4 matrices
- Immutable point value types (Point2D, Point3D)
- Conversion helpers that validate shapes before any math happens
- Structured RANSAC result container (model + inliers + stats)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NamedTuple, Sequence, TypeAlias, TypeVar, Union

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# - float64 for geometry / matrices (more stable for linear algebra)
# - bool_ for masks

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

# Point arrays, one point per row.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)
Points3D: TypeAlias = FloatArray      # shape: (N, 3)
Points: TypeAlias = FloatArray        # shape: (N, 2) or (N, 3)

# Homogeneous points [x, y, 1] for 3x3 transforms (affine/homography).
PointsHomog: TypeAlias = FloatArray   # shape: (N, 3)

# Boolean inlier mask: True as inlier, False as outlier
Mask: TypeAlias = BoolArray           # shape: (N,)

# 3x3 homogeneous transform matrix (2D) and 3x3 rotation matrix (3D).
Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)


# ---------- Point value types ----------
class Point2D(NamedTuple):
    x: float
    y: float


class Point3D(NamedTuple):
    x: float
    y: float
    z: float


Point: TypeAlias = Union[Point2D, Point3D]
PointLike: TypeAlias = Union[Sequence[float], FloatArray]
PointsLike: TypeAlias = Union[Sequence[Sequence[float]], FloatArray]


def make_point(coords: Sequence[float]) -> Point:
    """Build the point value type matching the number of coordinates."""
    if len(coords) == 2:
        return Point2D(float(coords[0]), float(coords[1]))
    if len(coords) == 3:
        return Point3D(float(coords[0]), float(coords[1]), float(coords[2]))
    raise ValueError(f"Expected 2 or 3 coordinates, got {len(coords)}")


def as_point(point: PointLike, dim: int) -> FloatArray:
    """
    Convert a single point to a (dim,) float64 array.

    Accepts tuples, lists, NamedTuples and 1-D arrays.
    """
    arr = np.asarray(point, dtype=np.float64)
    if arr.shape != (dim,):
        raise ValueError(f"Expected a point with {dim} coordinates, got shape {arr.shape}")
    return arr


def as_points(points: PointsLike, dim: int) -> Points:
    """
    Convert a sequence of points to an (N, dim) float64 array.

    An empty sequence becomes an empty (0, dim) array.
    """
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, dim), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != dim:
        raise ValueError(f"Expected points shape (N, {dim}), got {arr.shape}")
    return arr


def as_homogeneous(pts: Points2D) -> PointsHomog:
    """
    Convert (N,2) points -> (N,3) homogeneous points: [x, y, 1].
    - 3x3 transforms (affine/homography) are easiest to apply to homogeneous points.
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")

    ones = np.ones((pts.shape[0], 1), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), ones])


def is_valid_mat3x3(T: Mat3x3) -> bool:
    """
    Verify a 3x3 transform matrix.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == (3, 3) and np.isfinite(T).all()


# ---------- RANSAC output container ----------
M = TypeVar("M")


@dataclass(frozen=True)
class RansacResult(Generic[M]):
    model: M            # best model found, refit on all inliers
    inliers: Mask       # boolean mask of inliers under the best model
    num_inliers: int    # count of True values in inliers
    rms_error: float    # RMS error of inliers under the refit model
    iterations: int     # how many RANSAC iterations were actually run
    threshold: float    # the inlier threshold tau used
