"""Coordinate transform algebra and map projections.

Build, concatenate, invert, differentiate and filter transforms between
geodetic, projected and geocentric coordinate spaces. Transforms are immutable
values; the factory canonicalizes and interns them.
"""

__version__ = "0.1.0"

from .core.errors import (
    DimensionMismatchError,
    GeoxformError,
    NonConvergenceError,
    NonInvertibleTransformError,
    NotSeparableError,
    OutOfDomainError,
    TransformError,
)
from .core.matrix import Matrix
from .transform.base import MathTransform
from .transform.factory import TransformFactory, default_factory

__all__ = [
    "DimensionMismatchError",
    "GeoxformError",
    "MathTransform",
    "Matrix",
    "NonConvergenceError",
    "NonInvertibleTransformError",
    "NotSeparableError",
    "OutOfDomainError",
    "TransformError",
    "TransformFactory",
    "default_factory",
]
