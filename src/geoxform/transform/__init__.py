"""Transform algebra: contract, linear, concatenated and pass-through transforms,
dimension filtering and the optimizing factory."""

from .base import (
    InverseTransform,
    MathTransform,
    MathTransform1D,
    MathTransform2D,
    default_derivative,
    transform_path,
)
from .linear import (
    AffineTransform2D,
    ConstantTransform1D,
    IdentityTransform,
    LinearTransform,
    LinearTransform1D,
    MatrixTransform,
    create_linear,
)
from .exponential import ExponentialTransform1D, LogarithmicTransform1D, create_exponential
from .concatenated import ConcatenatedTransform
from .passthrough import PassThroughTransform, create_pass_through
from .pool import TransformPool
from .dimension_filter import DimensionFilter
from .factory import TransformFactory, default_factory

__all__ = [
    "MathTransform",
    "MathTransform1D",
    "MathTransform2D",
    "InverseTransform",
    "default_derivative",
    "transform_path",
    "LinearTransform",
    "IdentityTransform",
    "LinearTransform1D",
    "ConstantTransform1D",
    "MatrixTransform",
    "AffineTransform2D",
    "create_linear",
    "ExponentialTransform1D",
    "LogarithmicTransform1D",
    "create_exponential",
    "ConcatenatedTransform",
    "PassThroughTransform",
    "create_pass_through",
    "TransformPool",
    "DimensionFilter",
    "TransformFactory",
    "default_factory",
]
