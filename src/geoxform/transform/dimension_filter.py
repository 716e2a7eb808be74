"""Decompose transforms onto a subset of their input or output dimensions.

Used to split compound coordinate systems, for example to extract the
horizontal part of a (longitude, latitude, height) transform.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from ..core.errors import NotSeparableError
from ..core.matrix import Matrix
from ..core.logging import get_logger
from .base import MathTransform
from .concatenated import ConcatenatedTransform
from .linear import LinearTransform
from .passthrough import PassThroughTransform

if TYPE_CHECKING:
    from .factory import TransformFactory

logger = get_logger(__name__)


def _normalize(indices: Iterable[int], dimension: int, what: str) -> list[int]:
    selected = sorted(set(int(i) for i in indices))
    if not selected:
        raise ValueError(f"At least one {what} dimension must be selected")
    if selected[0] < 0 or selected[-1] >= dimension:
        raise ValueError(f"{what.capitalize()} dimensions {selected} out of range 0..{dimension - 1}")
    return selected


class DimensionFilter:
    """Separates transforms through the given factory."""

    def __init__(self, factory: TransformFactory):
        self.factory = factory

    def separate_input(
        self, transform: MathTransform, indices: Iterable[int]
    ) -> tuple[MathTransform, list[int]]:
        """Return a transform working on the selected inputs only.

        Args:
            transform: Transform to separate
            indices: Input dimensions to keep

        Returns:
            The separated transform and the output dimensions of ``transform``
            that it produces, in order

        Raises:
            NotSeparableError: If a kept output depends on a dropped input
            ValueError: If the indices are empty or out of range
        """
        dims = _normalize(indices, transform.dim_source, "source")
        return self._separate_input(transform, dims)

    def _separate_input(
        self, transform: MathTransform, dims: list[int]
    ) -> tuple[MathTransform, list[int]]:
        if len(dims) == transform.dim_source:
            return transform, list(range(transform.dim_target))

        if isinstance(transform, ConcatenatedTransform):
            first, middle = self._separate_input(transform.first, dims)
            second, target = self._separate_input(transform.second, middle)
            return self.factory.concatenate(first, second), target

        if isinstance(transform, PassThroughTransform):
            return self._separate_pass_through(transform, dims)

        if isinstance(transform, LinearTransform):
            return self._separate_linear(transform, dims)

        raise NotSeparableError(
            f"{type(transform).__name__} can't be separated on source dimensions {dims}"
        )

    def _separate_pass_through(
        self, transform: PassThroughTransform, dims: list[int]
    ) -> tuple[MathTransform, list[int]]:
        f = transform.first_affected
        n_src, n_tgt = transform.inner.dim_source, transform.inner.dim_target
        before = [d for d in dims if d < f]
        inside = [d - f for d in dims if f <= d < f + n_src]
        after = [d for d in dims if d >= f + n_src]
        # Trailing coordinates shift by the inner dimension change
        after_target = [d - n_src + n_tgt for d in after]

        if not inside:
            return self.factory.identity(len(dims)), before + after_target

        sub, sub_target = self._separate_input(transform.inner, inside)
        result = self.factory.pass_through(len(before), sub, len(after))
        return result, before + [f + j for j in sub_target] + after_target

    def _separate_linear(
        self, transform: LinearTransform, dims: list[int]
    ) -> tuple[MathTransform, list[int]]:
        matrix = transform.matrix
        n_src, n_tgt = transform.dim_source, transform.dim_target
        kept = set(dims)
        dropped = [i for i in range(n_src) if i not in kept]

        rows: list[int] = []
        for j in range(n_tgt):
            if any(matrix.get_element(j, i) != 0 for i in dims):
                if any(matrix.get_element(j, i) != 0 for i in dropped):
                    raise NotSeparableError(
                        f"Output dimension {j} depends on both kept and dropped inputs"
                    )
                rows.append(j)
        if any(matrix.get_element(n_tgt, i) != 0 for i in dropped):
            raise NotSeparableError("Projective row depends on a dropped input")
        if not rows:
            raise NotSeparableError(f"No output depends on source dimensions {dims}")

        sub = matrix.sub_matrix(rows + [n_tgt], dims + [n_src])
        logger.debug("Separated linear transform", {"source": dims, "target": rows})
        return self.factory.linear(sub), rows

    def separate_output(self, transform: MathTransform, indices: Iterable[int]) -> MathTransform:
        """Return a transform producing the selected outputs only.

        Raises:
            ValueError: If the indices are empty or out of range
        """
        dims = _normalize(indices, transform.dim_target, "target")
        return self._separate_output(transform, dims)

    def _separate_output(self, transform: MathTransform, dims: list[int]) -> MathTransform:
        n_tgt = transform.dim_target
        if len(dims) == n_tgt:
            return transform

        if isinstance(transform, LinearTransform):
            matrix = transform.matrix
            return self.factory.linear(
                matrix.sub_matrix(dims + [n_tgt], range(transform.dim_source + 1))
            )

        if isinstance(transform, ConcatenatedTransform):
            return self.factory.concatenate(
                transform.first, self._separate_output(transform.second, dims)
            )

        if isinstance(transform, PassThroughTransform):
            f = transform.first_affected
            inner_tgt = transform.inner.dim_target
            outside = [d for d in range(n_tgt) if d < f or d >= f + inner_tgt]
            inside = [d - f for d in dims if f <= d < f + inner_tgt]
            if inside and all(d in dims for d in outside):
                inner = self._separate_output(transform.inner, inside)
                return self.factory.pass_through(f, inner, transform.trailing)

        selection = Matrix.zeros(len(dims) + 1, n_tgt + 1)
        for row, dim in enumerate(dims):
            selection.set_element(row, dim, 1.0)
        selection.set_element(len(dims), n_tgt, 1.0)
        return self.factory.concatenate(transform, self.factory.linear(selection))


__all__ = ["DimensionFilter"]
