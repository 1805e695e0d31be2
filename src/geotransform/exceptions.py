"""
Exception types raised by geotransform.

Expected fit failures (mismatched point sets, too few points) are not
exceptions: compute() reports them by returning False. The types below
cover misuse and situations where no meaningful number can be produced.
"""


class GeoTransformError(Exception):
    """Base class for all geotransform errors."""


class SingularSystemError(GeoTransformError):
    """A factorization-based solver could not solve a rank deficient system."""


class DegenerateTransformError(GeoTransformError, ArithmeticError):
    """The transform has no finite inverse (zero determinant or zero scale)."""


class UnsupportedOperationError(GeoTransformError, NotImplementedError):
    """The operation is not defined for this kind of transform."""


class FitError(GeoTransformError):
    """Parameter estimation failed where a result was required."""


class ConfigError(GeoTransformError, ValueError):
    """Invalid configuration value."""
