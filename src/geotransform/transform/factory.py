"""
Build transform models by name, optionally from a GeoTransformConfig.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Union

from .affine import Affine2D
from .base import TransformModel, TransformType
from .chain import TransformChain
from .helmert2d import Helmert2D
from .helmert3d import Helmert3D
from .perspective import Perspective
from .projective import Projective2D
from .rotation import Rotation
from .scaling import Scaling
from .translation import Translation

if TYPE_CHECKING:
    from ..config import GeoTransformConfig

MODELS: dict[TransformType, type[TransformModel]] = {
    TransformType.translation: Translation,
    TransformType.rotation: Rotation,
    TransformType.scaling: Scaling,
    TransformType.helmert_2d: Helmert2D,
    TransformType.affine: Affine2D,
    TransformType.projective: Projective2D,
    TransformType.perspective: Perspective,
    TransformType.helmert_3d: Helmert3D,
    TransformType.chain: TransformChain,
}


def create_transform(
        kind: Union[str, TransformType],
        config: Optional["GeoTransformConfig"] = None,
        **params: Any,
) -> TransformModel:
    """
    Instantiate a model by type name ("affine", "helmert_3d", ...).

    Settings from `config` are applied first; explicit keyword arguments
    win over them.
    """
    try:
        ttype = kind if isinstance(kind, TransformType) else TransformType(kind)
    except ValueError:
        names = sorted(t.value for t in TransformType)
        raise ValueError(f"Unknown transform type {kind!r}, expected one of {names}") from None

    kwargs: dict[str, Any] = {}
    if config is not None:
        from ..config import model_kwargs
        kwargs.update(model_kwargs(config))
        if ttype is TransformType.helmert_3d:
            kwargs["max_iterations"] = config.estimation.helmert3d_max_iterations
            kwargs["tolerance"] = config.estimation.helmert3d_tolerance
        elif ttype is TransformType.perspective:
            kwargs["reproj_threshold"] = config.estimation.reproj_threshold

    kwargs.update(params)
    return MODELS[ttype](**kwargs)
