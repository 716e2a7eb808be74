"""Pass-through transform: apply an inner transform to a contiguous range of
coordinates and copy the leading and trailing coordinates unchanged."""

from __future__ import annotations

from typing import Any

import numpy as np

from ..core.matrix import Matrix
from ..core.types import PointLike
from .base import BatchResult, MathTransform
from .linear import IdentityTransform, LinearTransform, create_linear


def expand_matrix(sub_matrix: Matrix, first_affected: int, trailing: int, affine: int) -> Matrix:
    """Embed ``sub_matrix`` in a larger matrix that passes the other coordinates through.

    Args:
        sub_matrix: Matrix of the inner transform, or its derivative
        first_affected: Number of leading coordinates passed through
        trailing: Number of trailing coordinates passed through
        affine: 1 if ``sub_matrix`` has a translation column and homogeneous row, 0 otherwise

    Returns:
        The expanded matrix
    """
    skipped = first_affected + trailing
    num_row = sub_matrix.num_row - affine
    num_col = sub_matrix.num_col - affine
    matrix = Matrix.zeros(num_row + skipped + affine, num_col + skipped + affine)

    for j in range(first_affected):
        matrix.set_element(j, j, 1.0)
    sub_matrix.copy_sub_matrix(0, 0, num_row, num_col, first_affected, first_affected, matrix)

    offset = num_col - num_row
    num_row_out = num_row + skipped
    for j in range(num_row_out - trailing, num_row_out):
        matrix.set_element(j, j + offset, 1.0)

    if affine:
        # Translation column, homogeneous row and corner
        sub_matrix.copy_sub_matrix(0, num_col, num_row, affine, first_affected, num_col + skipped, matrix)
        sub_matrix.copy_sub_matrix(num_row, 0, affine, num_col, num_row + skipped, first_affected, matrix)
        sub_matrix.copy_sub_matrix(num_row, num_col, affine, affine, num_row + skipped, num_col + skipped, matrix)
    return matrix


class PassThroughTransform(MathTransform):
    """Applies ``inner`` to coordinates ``first_affected .. first_affected + inner.dim_source``.

    A nested pass-through is merged into a single one.
    """

    def __init__(self, first_affected: int, inner: MathTransform, trailing: int):
        super().__init__()
        if first_affected < 0:
            raise ValueError(f"first_affected must be non-negative, got {first_affected}")
        if trailing < 0:
            raise ValueError(f"trailing must be non-negative, got {trailing}")
        if isinstance(inner, PassThroughTransform):
            first_affected += inner.first_affected
            trailing += inner.trailing
            inner = inner.inner
        self.first_affected = first_affected
        self.inner = inner
        self.trailing = trailing

    @property
    def dim_source(self) -> int:
        return self.first_affected + self.inner.dim_source + self.trailing

    @property
    def dim_target(self) -> int:
        return self.first_affected + self.inner.dim_target + self.trailing

    def is_identity(self) -> bool:
        return self.inner.is_identity()

    def _transform_array(self, points: np.ndarray) -> BatchResult:
        f = self.first_affected
        inner_src, inner_tgt = self.inner.dim_source, self.inner.dim_target
        out = np.empty((points.shape[0], self.dim_target))
        out[:, :f] = points[:, :f]
        sub, error = self.inner._transform_array(points[:, f : f + inner_src])
        out[:, f : f + inner_tgt] = sub
        out[:, f + inner_tgt :] = points[:, f + inner_src :]
        return out, error

    def derivative(self, point: PointLike | None = None) -> Matrix:
        """Block-diagonal derivative with the inner derivative in the middle."""
        sub_point = None
        if point is not None:
            coords = np.asarray(point, dtype=np.float64).reshape(-1)
            sub_point = coords[self.first_affected : self.first_affected + self.inner.dim_source]
        return expand_matrix(self.inner.derivative(sub_point), self.first_affected, self.trailing, 0)

    def _create_inverse(self) -> MathTransform:
        return create_pass_through(self.first_affected, self.inner.invert(), self.trailing)

    def _key(self) -> tuple[Any, ...]:
        return (self.first_affected, self.inner, self.trailing)

    def __str__(self) -> str:
        parts = [str(self.first_affected)]
        if self.trailing != 0:
            parts.append(str(self.trailing))
        parts.append(str(self.inner))
        return f"PASSTHROUGH_MT[{','.join(parts)}]"


def create_pass_through(first_affected: int, inner: MathTransform, trailing: int) -> MathTransform:
    """Return the simplest transform equivalent to a pass-through of ``inner``.

    Raises:
        ValueError: If an ordinate count is negative
    """
    if first_affected < 0:
        raise ValueError(f"first_affected must be non-negative, got {first_affected}")
    if trailing < 0:
        raise ValueError(f"trailing must be non-negative, got {trailing}")
    if first_affected == 0 and trailing == 0:
        return inner
    if inner.is_identity() and inner.dim_source == inner.dim_target:
        return IdentityTransform(first_affected + inner.dim_source + trailing)
    if isinstance(inner, LinearTransform):
        return create_linear(expand_matrix(inner.matrix, first_affected, trailing, 1))
    return PassThroughTransform(first_affected, inner, trailing)


__all__ = ["PassThroughTransform", "create_pass_through", "expand_matrix"]
