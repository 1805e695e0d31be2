"""
Configuration for transform estimation.

Loads and saves settings as YAML. Example:

    solver:
      method: svd
      rcond: null
    estimation:
      strict: false
      max_condition: 1.0e+12
      helmert3d_max_iterations: 10
      helmert3d_tolerance: 1.0e-12
      reproj_threshold: 3.0
    ransac:
      tau: 3.0
      max_iters: 2000
      confidence: 0.99
      seed: 0
    log_level: WARNING
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional, Union
import logging

import yaml

from .exceptions import ConfigError
from .linalg.solver import SOLVER_METHODS, DenseLinearSolver

logger = logging.getLogger(__name__)

_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class SolverConfig:
    """Dense linear solver used by every model."""
    method: str = "svd"             # svd, qr, lu or cholesky
    rcond: Optional[float] = None   # relative cutoff for the numerical rank

    def __post_init__(self) -> None:
        if self.method not in SOLVER_METHODS:
            raise ConfigError(f"solver.method must be one of {SOLVER_METHODS}, got {self.method!r}")
        if self.rcond is not None and not self.rcond >= 0:
            raise ConfigError(f"solver.rcond must be >= 0, got {self.rcond}")


@dataclass(frozen=True)
class EstimationConfig:
    """Options shared by compute() across models."""
    strict: bool = False
    max_condition: float = 1e12
    helmert3d_max_iterations: int = 10
    helmert3d_tolerance: float = 1e-12
    reproj_threshold: float = 3.0   # Perspective inlier threshold

    def __post_init__(self) -> None:
        if not self.max_condition > 1.0:
            raise ConfigError(f"estimation.max_condition must be > 1, got {self.max_condition}")
        if self.helmert3d_max_iterations < 0:
            raise ConfigError("estimation.helmert3d_max_iterations must be >= 0")
        if not self.helmert3d_tolerance > 0:
            raise ConfigError("estimation.helmert3d_tolerance must be > 0")
        if not self.reproj_threshold > 0:
            raise ConfigError("estimation.reproj_threshold must be > 0")


@dataclass(frozen=True)
class RansacConfig:
    tau: float = 3.0
    max_iters: int = 2000
    confidence: float = 0.99
    seed: Optional[int] = 0

    def __post_init__(self) -> None:
        if not self.tau > 0:
            raise ConfigError(f"ransac.tau must be > 0, got {self.tau}")
        if self.max_iters < 1:
            raise ConfigError(f"ransac.max_iters must be >= 1, got {self.max_iters}")
        if not 0.0 < self.confidence < 1.0:
            raise ConfigError(f"ransac.confidence must be in (0, 1), got {self.confidence}")


@dataclass(frozen=True)
class GeoTransformConfig:
    """
    Top-level configuration.

    Attributes:
        solver: linear solver settings
        estimation: model estimation settings
        ransac: robust estimation settings
        log_level: level installed by setup_logging()
    """
    solver: SolverConfig = field(default_factory=SolverConfig)
    estimation: EstimationConfig = field(default_factory=EstimationConfig)
    ransac: RansacConfig = field(default_factory=RansacConfig)
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {_LOG_LEVELS}, got {self.log_level!r}")

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "GeoTransformConfig":
        """Build from a plain mapping; missing sections keep their defaults."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        unknown = set(data) - {"solver", "estimation", "ransac", "log_level"}
        if unknown:
            raise ConfigError(f"Unknown configuration section(s): {sorted(unknown)}")

        try:
            return cls(
                solver=SolverConfig(**(data.get("solver") or {})),
                estimation=EstimationConfig(**(data.get("estimation") or {})),
                ransac=RansacConfig(**(data.get("ransac") or {})),
                log_level=str(data.get("log_level", "WARNING")),
            )
        except TypeError as e:
            # unexpected keyword inside a section
            raise ConfigError(str(e)) from e

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "GeoTransformConfig":
        """
        Load configuration from a YAML file.

        Raises FileNotFoundError if the file is missing, ConfigError if its
        content is invalid.
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        logger.info(f"Loading configuration from {config_path}")
        return cls.from_dict(data)

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")


def make_solver(config: GeoTransformConfig) -> DenseLinearSolver:
    return DenseLinearSolver(method=config.solver.method, rcond=config.solver.rcond)  # type: ignore[arg-type]


def model_kwargs(config: GeoTransformConfig) -> dict[str, Any]:
    """Keyword arguments accepted by every TransformModel constructor."""
    return {
        "solver": make_solver(config),
        "strict": config.estimation.strict,
        "max_condition": config.estimation.max_condition,
    }


def ransac_kwargs(config: GeoTransformConfig) -> dict[str, Any]:
    """Keyword arguments for ransac() taken from the ransac section."""
    return {
        "tau": config.ransac.tau,
        "max_iters": config.ransac.max_iters,
        "confidence": config.ransac.confidence,
        "seed": config.ransac.seed,
    }


def setup_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Attach a stream handler to the package logger (idempotent)."""
    pkg_logger = logging.getLogger("geotransform")
    if isinstance(level, str):
        level = level.upper()
    pkg_logger.setLevel(level)

    if not any(getattr(h, "_geotransform", False) for h in pkg_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._geotransform = True  # type: ignore[attr-defined]
        pkg_logger.addHandler(handler)

    return pkg_logger
