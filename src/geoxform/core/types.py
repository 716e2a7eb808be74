"""Type definitions and aliases for coordinate transforms."""

from typing import Any, Sequence, Union

import numpy as np
from numpy.typing import NDArray

# Point buffers
FloatArray = NDArray[np.floating[Any]]
PointLike = Union[Sequence[float], FloatArray]

# Path segments for 2-D shape transformation, e.g. ("lineto", x, y)
PathSegment = tuple[Any, ...]
ShapePath = list[PathSegment]

__all__ = [
    "FloatArray",
    "PointLike",
    "PathSegment",
    "ShapePath",
]
