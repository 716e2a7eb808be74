"""Transform contract and the default behaviour shared by every transform.

A transform maps points of ``dim_source`` coordinates to points of
``dim_target`` coordinates. Points travel through flat numpy buffers so that a
source and a destination may be the same array, possibly with overlapping
ranges. Batch failures never abort a batch: the failing points are written as
NaN and the first failure is raised once the whole batch has been written.
"""

from __future__ import annotations

import math
import weakref
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

from ..core.errors import DimensionMismatchError, NonInvertibleTransformError, TransformError
from ..core.matrix import Matrix
from ..core.types import FloatArray, PointLike, ShapePath

# Result of a vectorized evaluation: output rows and the first failure, if any
BatchResult = tuple[np.ndarray, Optional[TransformError]]


def format_number(value: Any) -> str:
    """Format a parameter value for the text form."""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return repr(float(value))


def param_mt(name: str, parameters: list[tuple[str, Any]]) -> str:
    """Build the ``PARAM_MT["name", PARAMETER["key",value], ...]`` text form."""
    parts = [f'"{name}"']
    parts.extend(f'PARAMETER["{key}",{format_number(value)}]' for key, value in parameters)
    return f"PARAM_MT[{', '.join(parts)}]"


class MathTransform(ABC):
    """Base class of all transforms.

    Subclasses implement :meth:`_transform_array`, the dimension properties and
    :meth:`_key`. Everything else has a working default.
    """

    def __init__(self) -> None:
        # Either the inverse itself (strong) or a weakref to it
        self._inverse: MathTransform | weakref.ref[MathTransform] | None = None

    @property
    @abstractmethod
    def dim_source(self) -> int:
        """Number of coordinates of input points."""

    @property
    @abstractmethod
    def dim_target(self) -> int:
        """Number of coordinates of output points."""

    def is_identity(self) -> bool:
        return False

    @abstractmethod
    def _transform_array(self, points: np.ndarray) -> BatchResult:
        """Transform ``(N, dim_source)`` float64 rows into ``(N, dim_target)`` rows.

        Implementations must not modify ``points``. Points that cannot be
        transformed are set to NaN and the first error is returned alongside.
        """

    @abstractmethod
    def _key(self) -> tuple[Any, ...]:
        """Values that define this transform, for equality and hashing."""

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def apply(
        self,
        src: FloatArray,
        src_offset: int = 0,
        dst: FloatArray | None = None,
        dst_offset: int = 0,
        num_pts: int | None = None,
    ) -> FloatArray:
        """Transform points stored as consecutive coordinates in a flat buffer.

        Args:
            src: Flat source buffer, float64 or float32
            src_offset: Index of the first source coordinate
            dst: Flat destination buffer, may be ``src`` itself. Allocated if None
            dst_offset: Index of the first destination coordinate
            num_pts: Number of points, defaults to all points after ``src_offset``

        Returns:
            The destination buffer

        Raises:
            TransformError: The first per-point failure, after the batch is written
        """
        src = np.asarray(src)
        if src.ndim != 1:
            raise ValueError(f"Source buffer must be flat, got shape {src.shape}")
        dim_src, dim_tgt = self.dim_source, self.dim_target
        if num_pts is None:
            num_pts = (src.size - src_offset) // dim_src
        if num_pts < 0 or src_offset < 0 or dst_offset < 0:
            raise ValueError("Offsets and point count must be non-negative")
        if src_offset + num_pts * dim_src > src.size:
            raise ValueError("Source buffer too small for the requested points")

        if dst is None:
            dtype = src.dtype if src.dtype in (np.float32, np.float64) else np.float64
            dst = np.empty(dst_offset + num_pts * dim_tgt, dtype=dtype)
        elif dst.ndim != 1:
            raise ValueError(f"Destination buffer must be flat, got shape {dst.shape}")
        if dst_offset + num_pts * dim_tgt > dst.size:
            raise ValueError("Destination buffer too small for the requested points")
        if num_pts == 0:
            return dst

        block = src[src_offset : src_offset + num_pts * dim_src].reshape(num_pts, dim_src)
        points = block.astype(np.float64, copy=False)
        out_view = dst[dst_offset : dst_offset + num_pts * dim_tgt]
        if np.shares_memory(points, out_view):
            # Read everything before anything is written
            points = points.copy()

        result, error = self._transform_array(points)
        out_view[:] = result.reshape(-1)
        if error is not None:
            raise error
        return dst

    def apply_points(self, points: PointLike, out: np.ndarray | None = None) -> np.ndarray:
        """Transform an ``(N, dim_source)`` array into an ``(N, dim_target)`` array.

        If ``out`` is given the result is written there even when some points
        fail, before the first failure is raised.
        """
        array = np.asarray(points, dtype=np.float64)
        if array.ndim != 2 or array.shape[1] != self.dim_source:
            raise DimensionMismatchError(
                found=array.shape[-1] if array.ndim else 0, expected=self.dim_source
            )
        result, error = self._transform_array(array)
        if out is not None:
            out[...] = result
            result = out
        if error is not None:
            raise error
        return result

    def apply_point(self, point: PointLike) -> np.ndarray:
        """Transform a single point."""
        array = np.asarray(point, dtype=np.float64).reshape(-1)
        if array.size != self.dim_source:
            raise DimensionMismatchError(found=array.size, expected=self.dim_source)
        result, error = self._transform_array(array.reshape(1, -1))
        if error is not None:
            raise error
        return result[0]

    def derivative(self, point: PointLike | None = None) -> Matrix:
        """Jacobian at ``point`` as a ``dim_target x dim_source`` matrix.

        Raises:
            TransformError: If the derivative is not available at this point
        """
        return default_derivative(self, point)

    # ------------------------------------------------------------------
    # Inversion
    # ------------------------------------------------------------------

    def invert(self) -> MathTransform:
        """Return the inverse transform, creating and caching it on first use.

        Raises:
            NonInvertibleTransformError: If the transform has no inverse
        """
        cached = self._cached_inverse()
        if cached is not None:
            return cached
        if self.is_identity():
            return self
        inverse = self._create_inverse()
        if isinstance(inverse, InverseTransform) and inverse.forward is self:
            # The inverse already keeps this transform alive
            self._inverse = weakref.ref(inverse)
        else:
            self._inverse = inverse
            inverse._link_inverse(self)
        return inverse

    def _create_inverse(self) -> MathTransform:
        raise NonInvertibleTransformError(f"{type(self).__name__} is not invertible")

    def _cached_inverse(self) -> MathTransform | None:
        ref = self._inverse
        if isinstance(ref, weakref.ref):
            return ref()
        return ref

    def _link_inverse(self, other: MathTransform) -> None:
        if self._cached_inverse() is None:
            self._inverse = weakref.ref(other)

    # ------------------------------------------------------------------
    # Composition hook
    # ------------------------------------------------------------------

    def _concatenate(self, other: MathTransform, apply_other_first: bool) -> MathTransform | None:
        """Return an optimized combination with ``other``, or None.

        Args:
            other: The transform to combine with
            apply_other_first: True for ``self(other(p))``, False for ``other(self(p))``
        """
        return None

    # ------------------------------------------------------------------
    # Value semantics
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return False
        assert isinstance(other, MathTransform)
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._key()))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.dim_source}D->{self.dim_target}D>"


class MathTransform1D(MathTransform):
    """Transform of one coordinate to one coordinate.

    Subclasses provide vectorized :meth:`_evaluate` and
    :meth:`_evaluate_derivative`.
    """

    @property
    def dim_source(self) -> int:
        return 1

    @property
    def dim_target(self) -> int:
        return 1

    @abstractmethod
    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        """Evaluate on a 1-D array of values."""

    @abstractmethod
    def _evaluate_derivative(self, values: np.ndarray) -> np.ndarray:
        """First derivative on a 1-D array of values."""

    def apply_scalar(self, value: float) -> float:
        return float(self._evaluate(np.array([value], dtype=np.float64))[0])

    def derivative_1d(self, value: float) -> float:
        return float(self._evaluate_derivative(np.array([value], dtype=np.float64))[0])

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        return self._evaluate(points[:, 0]).reshape(-1, 1), None


class MathTransform2D(MathTransform):
    """Transform of two coordinates to two coordinates, with path support."""

    @property
    def dim_source(self) -> int:
        return 2

    @property
    def dim_target(self) -> int:
        return 2

    def derivative_2d(self, x: float, y: float) -> Matrix:
        """Derivative at ``(x, y)``.

        Raises:
            TransformError: If the transform does not provide one
        """
        raise TransformError(f"Cannot compute derivative of {type(self).__name__}")

    def transform_path(self, path: ShapePath) -> ShapePath:
        return transform_path(self, path)


class InverseTransform(MathTransform):
    """Inverse of another transform, keeping a strong reference to it.

    Subclasses implement :meth:`_transform_array`. The inverse of an inverse is
    the original forward transform.
    """

    def __init__(self, forward: MathTransform):
        super().__init__()
        self.forward = forward
        self._inverse = forward

    @property
    def dim_source(self) -> int:
        return self.forward.dim_target

    @property
    def dim_target(self) -> int:
        return self.forward.dim_source

    def is_identity(self) -> bool:
        return self.forward.is_identity()

    def _create_inverse(self) -> MathTransform:
        return self.forward

    def _key(self) -> tuple[Any, ...]:
        return (self.forward,)

    def __str__(self) -> str:
        return f"INVERSE_MT[{self.forward}]"


def default_derivative(transform: MathTransform, point: PointLike | None) -> Matrix:
    """Derivative fallback for transforms without a closed-form matrix.

    One-dimensional transforms use their scalar derivative and two-dimensional
    transforms use :meth:`MathTransform2D.derivative_2d`.

    Raises:
        TransformError: If no point is given or no derivative is available
    """
    if point is None:
        raise TransformError(
            f"Cannot compute derivative of {type(transform).__name__} without a point"
        )
    coords = np.asarray(point, dtype=np.float64).reshape(-1)
    if coords.size != transform.dim_source:
        raise DimensionMismatchError(found=coords.size, expected=transform.dim_source)
    if isinstance(transform, MathTransform1D):
        return Matrix([[transform.derivative_1d(float(coords[0]))]])
    if isinstance(transform, MathTransform2D):
        return transform.derivative_2d(float(coords[0]), float(coords[1]))
    raise TransformError(f"Cannot compute derivative of {type(transform).__name__}")


def _is_collinear(p0: np.ndarray, ctrl: np.ndarray, p2: np.ndarray) -> bool:
    dx, dy = p2[0] - p0[0], p2[1] - p0[1]
    cross = (ctrl[0] - p0[0]) * dy - (ctrl[1] - p0[1]) * dx
    return abs(cross) <= 1e-12 * max(dx * dx + dy * dy, math.ulp(1.0))


def transform_path(transform: MathTransform, path: ShapePath) -> ShapePath:
    """Transform a 2-D path made of moveto/lineto/quadto/cubicto/close segments.

    Each segment is replaced by a quadratic curve that passes through the
    transformed start, interior and end points, or by a straight line when the
    three transformed points are collinear.

    Raises:
        DimensionMismatchError: If the transform is not 2-D to 2-D
        ValueError: If a segment is unknown or the path does not start with moveto
    """
    if transform.dim_source != 2 or transform.dim_target != 2:
        raise DimensionMismatchError("Path transformation requires a 2-D transform")

    result: ShapePath = []
    start: tuple[float, float] | None = None
    start_t: np.ndarray | None = None
    current: tuple[float, float] | None = None
    current_t: np.ndarray | None = None

    for segment in path:
        op = segment[0]
        if op == "moveto":
            current = start = (float(segment[1]), float(segment[2]))
            current_t = start_t = transform.apply_point(current)
            result.append(("moveto", float(current_t[0]), float(current_t[1])))
            continue
        if current is None or current_t is None or start is None or start_t is None:
            raise ValueError("Path must start with a moveto segment")

        ax, ay = current
        if op == "lineto":
            ex, ey = float(segment[1]), float(segment[2])
            mx, my = 0.5 * (ax + ex), 0.5 * (ay + ey)
        elif op == "quadto":
            cx, cy, ex, ey = (float(v) for v in segment[1:5])
            mx = 0.5 * (cx + 0.5 * (ax + ex))
            my = 0.5 * (cy + 0.5 * (ay + ey))
        elif op == "cubicto":
            c1x, c1y, c2x, c2y, ex, ey = (float(v) for v in segment[1:7])
            mx = 0.25 * (1.5 * (c1x + c2x) + 0.5 * (ax + ex))
            my = 0.25 * (1.5 * (c1y + c2y) + 0.5 * (ay + ey))
        elif op == "close":
            ex, ey = start
            if (ax, ay) == (ex, ey):
                result.append(("close",))
                current, current_t = start, start_t
                continue
            mx, my = 0.5 * (ax + ex), 0.5 * (ay + ey)
        else:
            raise ValueError(f"Unknown path segment {op!r}")

        interior, end = transform.apply_points([[mx, my], [ex, ey]])
        ctrl = 2.0 * interior - 0.5 * (current_t + end)
        if _is_collinear(current_t, ctrl, end):
            result.append(("lineto", float(end[0]), float(end[1])))
        else:
            result.append(("quadto", float(ctrl[0]), float(ctrl[1]), float(end[0]), float(end[1])))

        if op == "close":
            result.append(("close",))
            current, current_t = start, start_t
        else:
            current, current_t = (ex, ey), end

    return result


__all__ = [
    "BatchResult",
    "MathTransform",
    "MathTransform1D",
    "MathTransform2D",
    "InverseTransform",
    "default_derivative",
    "transform_path",
    "param_mt",
    "format_number",
]
