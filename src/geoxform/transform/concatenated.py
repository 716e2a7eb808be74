"""Concatenation of two transforms, ``second(first(p))``.

:meth:`ConcatenatedTransform.create` picks the most specialized node for the
operands. "Direct" nodes have a transfer dimension equal to both endpoints and
use the destination buffer for the intermediate result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from ..core.errors import DimensionMismatchError, TransformError
from ..core.matrix import Matrix
from ..core.types import FloatArray, PointLike
from .base import BatchResult, MathTransform, MathTransform1D, MathTransform2D

if TYPE_CHECKING:
    from .factory import TransformFactory


class ConcatenatedTransform(MathTransform):
    """Generic concatenation going through an intermediate buffer."""

    def __init__(
        self,
        first: MathTransform,
        second: MathTransform,
        factory: TransformFactory | None = None,
    ):
        super().__init__()
        if first.dim_target != second.dim_source:
            raise DimensionMismatchError(found=second.dim_source, expected=first.dim_target)
        self.first = first
        self.second = second
        self._factory = factory

    @classmethod
    def create(
        cls,
        first: MathTransform,
        second: MathTransform,
        factory: TransformFactory | None = None,
    ) -> ConcatenatedTransform:
        """Return the most specialized concatenation node for the two steps."""
        dim_source, dim_target = first.dim_source, second.dim_target
        if dim_source == 1 and dim_target == 1:
            if isinstance(first, MathTransform1D) and isinstance(second, MathTransform1D):
                return ConcatenatedTransformDirect1D(first, second, factory)
            return ConcatenatedTransform1D(first, second, factory)
        if dim_source == 2 and dim_target == 2:
            if isinstance(first, MathTransform2D) and isinstance(second, MathTransform2D):
                return ConcatenatedTransformDirect2D(first, second, factory)
            return ConcatenatedTransform2D(first, second, factory)
        if dim_source == first.dim_target and second.dim_source == dim_target:
            return ConcatenatedTransformDirect(first, second, factory)
        return ConcatenatedTransform(first, second, factory)

    @property
    def dim_source(self) -> int:
        return self.first.dim_source

    @property
    def dim_target(self) -> int:
        return self.second.dim_target

    def is_identity(self) -> bool:
        return False

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        intermediate, error = self.first._transform_array(points)
        result, second_error = self.second._transform_array(intermediate)
        return result, error if error is not None else second_error

    def derivative(self, point: PointLike | None = None) -> Matrix:
        """Chain rule: derivative of ``second`` at ``first(point)`` times that of ``first``."""
        if point is None:
            d1 = self.first.derivative(None)
            d2 = self.second.derivative(None)
        else:
            d1 = self.first.derivative(point)
            d2 = self.second.derivative(self.first.apply_point(point))
        return d2.multiply(d1)

    def _create_inverse(self) -> MathTransform:
        factory = self._factory
        if factory is None:
            from .factory import default_factory

            factory = default_factory()
        return factory.concatenate(self.second.invert(), self.first.invert())

    def _key(self) -> tuple[Any, ...]:
        return (self.first, self.second)

    def steps(self) -> list[MathTransform]:
        """The non-concatenated steps of this chain, in application order."""
        result: list[MathTransform] = []
        for step in (self.first, self.second):
            if isinstance(step, ConcatenatedTransform):
                result.extend(step.steps())
            else:
                result.append(step)
        return result

    def __str__(self) -> str:
        return f"CONCAT_MT[{', '.join(str(step) for step in self.steps())}]"


class ConcatenatedTransformDirect(ConcatenatedTransform):
    """Concatenation where the intermediate points fit in the destination buffer."""

    def apply(
        self,
        src: FloatArray,
        src_offset: int = 0,
        dst: FloatArray | None = None,
        dst_offset: int = 0,
        num_pts: int | None = None,
    ) -> FloatArray:
        src = np.asarray(src)
        # Single precision destinations would round the intermediate points
        if dst is None or dst.dtype != np.float64 or src.ndim != 1:
            return super().apply(src, src_offset, dst, dst_offset, num_pts)
        if num_pts is None:
            num_pts = (src.size - src_offset) // self.dim_source

        error: TransformError | None = None
        try:
            self.first.apply(src, src_offset, dst, dst_offset, num_pts)
        except TransformError as exc:
            error = exc
        try:
            self.second.apply(dst, dst_offset, dst, dst_offset, num_pts)
        except TransformError as exc:
            if error is None:
                error = exc
        if error is not None:
            raise error
        return dst


class ConcatenatedTransform1D(ConcatenatedTransform, MathTransform1D):
    """One-dimensional concatenation whose steps are not both 1-D."""

    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        result, _ = self._transform_array(values.reshape(-1, 1))
        return result[:, 0]

    def _evaluate_derivative(self, values: np.ndarray) -> np.ndarray:
        return np.array([self.derivative([v]).get_element(0, 0) for v in values])

    def apply_scalar(self, value: float) -> float:
        return float(self.apply_point([value])[0])


class ConcatenatedTransformDirect1D(ConcatenatedTransformDirect, MathTransform1D):
    """Concatenation of two 1-D transforms."""

    first: MathTransform1D
    second: MathTransform1D

    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        return self.second._evaluate(self.first._evaluate(values))

    def _evaluate_derivative(self, values: np.ndarray) -> np.ndarray:
        return self.second._evaluate_derivative(self.first._evaluate(values)) * (
            self.first._evaluate_derivative(values)
        )

    def derivative(self, point: PointLike | None = None) -> Matrix:
        if point is None:
            return super().derivative(None)
        value = float(np.asarray(point, dtype=np.float64).reshape(-1)[0])
        return Matrix([[self.derivative_1d(value)]])


class ConcatenatedTransform2D(ConcatenatedTransform, MathTransform2D):
    """Two-dimensional concatenation through a non 2-D intermediate space."""

    def derivative_2d(self, x: float, y: float) -> Matrix:
        return self.derivative([x, y])


class ConcatenatedTransformDirect2D(ConcatenatedTransformDirect, MathTransform2D):
    """Concatenation of two 2-D transforms."""

    def derivative_2d(self, x: float, y: float) -> Matrix:
        return self.derivative([x, y])


__all__ = [
    "ConcatenatedTransform",
    "ConcatenatedTransformDirect",
    "ConcatenatedTransform1D",
    "ConcatenatedTransformDirect1D",
    "ConcatenatedTransform2D",
    "ConcatenatedTransformDirect2D",
]
