"""Linear transforms: identity, 1-D scale/offset, general matrix and 2-D affine.

All matrix transforms evaluate every output coordinate with the same sequence
of floating point operations: start from the translation term, then add each
``x[i] * m[j, i]`` in column order, then divide by the homogeneous coordinate
for projective matrices. Specialized classes therefore give bit-identical
results to the general case.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

import numpy as np

from ..core.errors import DimensionMismatchError, NonInvertibleTransformError, TransformError
from ..core.matrix import Matrix
from ..core.types import PointLike
from .base import BatchResult, MathTransform, MathTransform1D, MathTransform2D, param_mt


def affine_parameters(matrix: Matrix) -> list[tuple[str, Any]]:
    """Parameters of the ``Affine`` text form, omitting identity-valued elements."""
    params: list[tuple[str, Any]] = [("num_row", matrix.num_row), ("num_col", matrix.num_col)]
    last_row, last_col = matrix.num_row - 1, matrix.num_col - 1
    for j in range(matrix.num_row):
        for i in range(matrix.num_col):
            value = matrix.get_element(j, i)
            # The homogeneous corner of a non-square matrix is still 1
            default = 1.0 if (j == i or (j == last_row and i == last_col)) else 0.0
            if value != default:
                params.append((f"elt_{j}_{i}", value))
    return params


class LinearTransform(MathTransform):
    """A transform described entirely by a ``(target+1) x (source+1)`` matrix."""

    @property
    @abstractmethod
    def matrix(self) -> Matrix:
        """A copy of the matrix of this transform."""

    def __str__(self) -> str:
        return param_mt("Affine", affine_parameters(self.matrix))


class IdentityTransform(LinearTransform):
    """Copies coordinates unchanged."""

    def __init__(self, dimension: int):
        super().__init__()
        if dimension < 1:
            raise ValueError(f"Identity dimension must be positive, got {dimension}")
        self._dimension = dimension

    @property
    def dim_source(self) -> int:
        return self._dimension

    @property
    def dim_target(self) -> int:
        return self._dimension

    @property
    def matrix(self) -> Matrix:
        return Matrix.identity(self._dimension + 1)

    def is_identity(self) -> bool:
        return True

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        return points.copy(), None

    def derivative(self, point: PointLike | None = None) -> Matrix:
        return Matrix.identity(self._dimension)

    def invert(self) -> MathTransform:
        return self

    def _key(self) -> tuple[Any, ...]:
        return (self._dimension,)


class LinearTransform1D(MathTransform1D, LinearTransform):
    """``y = offset + scale * x``."""

    def __init__(self, scale: float, offset: float):
        super().__init__()
        self.scale = float(scale)
        self.offset = float(offset)

    @classmethod
    def create(cls, scale: float, offset: float) -> LinearTransform1D:
        """Create a 1-D linear transform, or a constant one when ``scale`` is zero."""
        if scale == 0:
            return ConstantTransform1D(offset)
        return LinearTransform1D(scale, offset)

    @property
    def matrix(self) -> Matrix:
        return Matrix([[self.scale, self.offset], [0.0, 1.0]])

    def is_identity(self) -> bool:
        return self.scale == 1.0 and self.offset == 0.0

    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        acc = np.full(values.shape, self.offset)
        acc += values * self.scale
        return acc

    def _evaluate_derivative(self, values: np.ndarray) -> np.ndarray:
        return np.full(values.shape, self.scale)

    def derivative(self, point: PointLike | None = None) -> Matrix:
        return Matrix([[self.scale]])

    def _create_inverse(self) -> MathTransform:
        return LinearTransform1D.create(1.0 / self.scale, -self.offset / self.scale)

    def _key(self) -> tuple[Any, ...]:
        return (self.scale, self.offset)


class ConstantTransform1D(LinearTransform1D):
    """Returns ``offset`` whatever the input, NaN included."""

    def __init__(self, offset: float):
        super().__init__(0.0, offset)

    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        return np.full(values.shape, self.offset)

    def _create_inverse(self) -> MathTransform:
        raise NonInvertibleTransformError("A constant transform has no inverse")


class MatrixTransform(LinearTransform):
    """Transform given by an arbitrary, possibly projective, matrix."""

    def __init__(self, matrix: Matrix):
        super().__init__()
        if matrix.num_row < 2 or matrix.num_col < 2:
            raise DimensionMismatchError(
                f"Matrix must be at least 2x2, got {matrix.num_row}x{matrix.num_col}"
            )
        self._elements = matrix.to_array()
        self._elements.setflags(write=False)
        last = self._elements[-1]
        self._affine = bool(np.all(last[:-1] == 0.0) and last[-1] == 1.0)

    @property
    def dim_source(self) -> int:
        return self._elements.shape[1] - 1

    @property
    def dim_target(self) -> int:
        return self._elements.shape[0] - 1

    @property
    def matrix(self) -> Matrix:
        return Matrix(self._elements)

    def is_affine(self) -> bool:
        return self._affine

    def is_identity(self) -> bool:
        return self.dim_source == self.dim_target and bool(
            np.array_equal(self._elements, np.eye(self.dim_source + 1))
        )

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        m = self._elements
        n_src = self.dim_source
        n_rows = self.dim_target if self._affine else self.dim_target + 1
        out = np.empty((points.shape[0], n_rows))
        for j in range(n_rows):
            acc = np.full(points.shape[0], m[j, n_src])
            for i in range(n_src):
                acc += points[:, i] * m[j, i]
            out[:, j] = acc
        if self._affine:
            return out, None
        with np.errstate(divide="ignore", invalid="ignore"):
            return out[:, :-1] / out[:, -1:], None

    def derivative(self, point: PointLike | None = None) -> Matrix:
        """Jacobian matrix. Only affine matrices can omit the point."""
        n_src, n_tgt = self.dim_source, self.dim_target
        if self._affine:
            return Matrix(self._elements[:n_tgt, :n_src])
        if point is None:
            raise TransformError("Derivative of a projective transform requires a point")
        coords = np.asarray(point, dtype=np.float64).reshape(-1)
        if coords.size != n_src:
            raise DimensionMismatchError(found=coords.size, expected=n_src)
        homogeneous = np.append(coords, 1.0)
        values = self._elements @ homogeneous
        w = values[-1]
        m = self._elements
        jac = (m[:n_tgt, :n_src] * w - np.outer(values[:n_tgt], m[-1, :n_src])) / (w * w)
        return Matrix(jac)

    def _create_inverse(self) -> MathTransform:
        return create_linear(self.matrix.inverse())

    def _key(self) -> tuple[Any, ...]:
        return (self._elements.shape, tuple(self._elements.ravel().tolist()))


class AffineTransform2D(MatrixTransform, MathTransform2D):
    """2-D affine transform, a ``3 x 3`` matrix with last row ``[0, 0, 1]``."""

    def __init__(self, matrix: Matrix):
        if matrix.num_row != 3 or matrix.num_col != 3 or not matrix.is_affine():
            raise ValueError("AffineTransform2D requires a 3x3 affine matrix")
        super().__init__(matrix)

    def derivative_2d(self, x: float, y: float) -> Matrix:
        return self.derivative()


def create_linear(matrix: Matrix) -> LinearTransform:
    """Return the most specialized linear transform for ``matrix``."""
    if matrix.is_identity():
        return IdentityTransform(matrix.num_row - 1)
    if matrix.is_affine():
        if matrix.num_row == 2:
            return LinearTransform1D.create(matrix.get_element(0, 0), matrix.get_element(0, 1))
        if matrix.num_row == 3:
            return AffineTransform2D(matrix)
    return MatrixTransform(matrix)


__all__ = [
    "LinearTransform",
    "IdentityTransform",
    "LinearTransform1D",
    "ConstantTransform1D",
    "MatrixTransform",
    "AffineTransform2D",
    "affine_parameters",
    "create_linear",
]
