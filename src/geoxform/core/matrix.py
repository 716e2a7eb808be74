"""Dense row-major matrix used by the transform algebra.

A transform of source dimension S and target dimension T is represented by a
``(T+1) x (S+1)`` matrix. The extra column holds translation terms and the extra
row is ``[0, ..., 0, 1]`` for affine transforms. Other last rows give projective
transforms, which are applied with a homogeneous division.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from .errors import DimensionMismatchError, SingularMatrixError


class Matrix:
    """A ``num_row x num_col`` matrix of doubles backed by a numpy array.

    Matrices are mutable work objects. Transforms keep private copies, so
    mutating a matrix after handing it to a factory has no effect on the
    transform.
    """

    __slots__ = ("_elements",)

    def __init__(self, elements: Sequence[Sequence[float]] | np.ndarray):
        array = np.array(elements, dtype=np.float64)
        if array.ndim != 2:
            raise ValueError(f"Matrix requires 2-D elements, got shape {array.shape}")
        self._elements = array

    @classmethod
    def identity(cls, size: int) -> Matrix:
        """Square identity matrix."""
        return cls(np.eye(size, dtype=np.float64))

    @classmethod
    def zeros(cls, num_row: int, num_col: int) -> Matrix:
        return cls(np.zeros((num_row, num_col), dtype=np.float64))

    @property
    def num_row(self) -> int:
        return self._elements.shape[0]

    @property
    def num_col(self) -> int:
        return self._elements.shape[1]

    def get_element(self, row: int, col: int) -> float:
        return float(self._elements[row, col])

    def set_element(self, row: int, col: int, value: float) -> None:
        self._elements[row, col] = value

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._elements[index]

    def to_array(self) -> np.ndarray:
        """Return a copy of the elements as a 2-D array."""
        return self._elements.copy()

    def copy(self) -> Matrix:
        return Matrix(self._elements)

    def is_affine(self) -> bool:
        """True if the matrix is square with a last row of ``[0, ..., 0, 1]``."""
        if self.num_row != self.num_col:
            return False
        last = self._elements[-1]
        return bool(np.all(last[:-1] == 0.0) and last[-1] == 1.0)

    def is_identity(self) -> bool:
        if self.num_row != self.num_col:
            return False
        return bool(np.array_equal(self._elements, np.eye(self.num_row)))

    def multiply(self, other: Matrix) -> Matrix:
        """Return ``self x other``.

        Raises:
            DimensionMismatchError: If the inner sizes differ
        """
        if self.num_col != other.num_row:
            raise DimensionMismatchError(found=other.num_row, expected=self.num_col)
        return Matrix(self._elements @ other._elements)

    __matmul__ = multiply

    def inverse(self) -> Matrix:
        """Return the inverse matrix.

        Raises:
            SingularMatrixError: If the matrix is not square or is singular
        """
        if self.num_row != self.num_col:
            raise SingularMatrixError(
                f"Can't invert a non-square {self.num_row}x{self.num_col} matrix"
            )
        try:
            inverted = np.linalg.inv(self._elements)
        except np.linalg.LinAlgError as exc:
            raise SingularMatrixError("Matrix is singular") from exc
        if not np.all(np.isfinite(inverted)):
            raise SingularMatrixError("Matrix is singular")
        return Matrix(inverted)

    def copy_sub_matrix(
        self,
        src_row: int,
        src_col: int,
        num_row: int,
        num_col: int,
        dst_row: int,
        dst_col: int,
        target: Matrix,
    ) -> None:
        """Copy a block of this matrix into ``target`` at ``(dst_row, dst_col)``."""
        if num_row <= 0 or num_col <= 0:
            return
        block = self._elements[src_row : src_row + num_row, src_col : src_col + num_col]
        target._elements[dst_row : dst_row + num_row, dst_col : dst_col + num_col] = block

    def sub_matrix(self, rows: Iterable[int], cols: Iterable[int]) -> Matrix:
        """Return a new matrix made of the given rows and columns, in order."""
        return Matrix(self._elements[np.ix_(list(rows), list(cols))])

    def equals(self, other: Matrix, tolerance: float = 0.0) -> bool:
        if self._elements.shape != other._elements.shape:
            return False
        if tolerance == 0.0:
            return bool(np.array_equal(self._elements, other._elements))
        return bool(np.all(np.abs(self._elements - other._elements) <= tolerance))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.equals(other)

    # Mutable, hence unhashable
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Matrix({self._elements.tolist()!r})"

    def __str__(self) -> str:
        rows = ["  ".join(f"{v:>12.6g}" for v in row) for row in self._elements]
        return "\n".join(rows)


__all__ = ["Matrix"]
