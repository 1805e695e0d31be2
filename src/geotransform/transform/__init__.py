"""
Transform models, composition, fit evaluation and robust estimation.
"""

from .base import DEFAULT_MAX_CONDITION, Transform2D, Transform3D, TransformModel, TransformType
from .translation import Translation
from .rotation import Rotation
from .scaling import Scaling
from .helmert2d import Helmert2D
from .affine import Affine2D
from .projective import Projective2D, apply_homography
from .perspective import Perspective
from .helmert3d import Helmert3D, angles_from_rotation_matrix, rotation_matrix_xyz
from .chain import TransformChain
from .evaluate import FitEvaluator, FitReport, residuals, rmse
from .ransac import ransac
from .factory import create_transform

__all__ = [
    "DEFAULT_MAX_CONDITION", "TransformModel", "Transform2D", "Transform3D", "TransformType",
    "Translation", "Rotation", "Scaling", "Helmert2D", "Affine2D",
    "Projective2D", "apply_homography", "Perspective",
    "Helmert3D", "rotation_matrix_xyz", "angles_from_rotation_matrix",
    "TransformChain",
    "FitEvaluator", "FitReport", "residuals", "rmse",
    "ransac",
    "create_transform",
]
