"""
geotransform: estimate and apply coordinate transformations between 2D/3D
frames from corresponding points.
"""

__version__ = "0.1.0"

from .exceptions import (
    ConfigError, DegenerateTransformError, FitError, GeoTransformError,
    SingularSystemError, UnsupportedOperationError,
)
from .types import Point2D, Point3D, RansacResult
from .linalg import DenseLinearSolver, LinearSolution
from .transform import (
    Affine2D, FitEvaluator, FitReport, Helmert2D, Helmert3D, Perspective,
    Projective2D, Rotation, Scaling, TransformChain, TransformModel,
    TransformType, Translation, create_transform, ransac, rmse,
)
from .config import GeoTransformConfig, setup_logging

__all__ = [
    "__version__",
    "GeoTransformError", "SingularSystemError", "DegenerateTransformError",
    "UnsupportedOperationError", "FitError", "ConfigError",
    "Point2D", "Point3D", "RansacResult",
    "DenseLinearSolver", "LinearSolution",
    "TransformModel", "TransformType", "Translation", "Rotation", "Scaling",
    "Helmert2D", "Affine2D", "Projective2D", "Perspective", "Helmert3D",
    "TransformChain", "FitEvaluator", "FitReport", "rmse", "ransac",
    "create_transform",
    "GeoTransformConfig", "setup_logging",
]
