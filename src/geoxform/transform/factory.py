"""Construction entry point for transforms.

The factory canonicalizes what it builds: linear steps are fused, inverse
pairs cancel, nested chains are re-associated so neighbours can merge, and
the results are interned in a :class:`TransformPool`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Iterable, Sequence

from pydantic import BaseModel

from ..core.config import (
    AffineStep,
    PassThroughStep,
    ProjectionStep,
    Settings,
    Step,
    TransformChain,
    get_settings,
    load_config,
)
from ..core.errors import ConfigError, DimensionMismatchError, TransformError
from ..core.logging import get_logger
from ..core.matrix import Matrix
from ..proj import create_projection
from .base import MathTransform
from .concatenated import ConcatenatedTransform
from .dimension_filter import DimensionFilter
from .linear import IdentityTransform, LinearTransform, create_linear
from .passthrough import create_pass_through
from .pool import TransformPool

logger = get_logger(__name__)


def _are_inverse(t1: MathTransform, t2: MathTransform) -> bool:
    """True if either transform has the other as its cached inverse."""
    inverse = t1._cached_inverse()
    if inverse is not None and (inverse is t2 or inverse == t2):
        return True
    inverse = t2._cached_inverse()
    return inverse is not None and (inverse is t1 or inverse == t1)


class TransformFactory:
    """Builds, optimizes and interns transforms.

    Args:
        pool: Interning pool, a private one is created if None
        settings: Runtime settings, defaults to the process-scoped ones
    """

    def __init__(self, pool: TransformPool | None = None, settings: Settings | None = None):
        self.pool = pool if pool is not None else TransformPool()
        self._settings = settings
        self._filter = DimensionFilter(self)

    @property
    def settings(self) -> Settings:
        return self._settings if self._settings is not None else get_settings()

    def _intern(self, transform: MathTransform) -> MathTransform:
        if self.settings.intern:
            return self.pool.intern(transform)
        return transform

    # ------------------------------------------------------------------
    # Basic transforms
    # ------------------------------------------------------------------

    def identity(self, dimension: int) -> MathTransform:
        """Identity transform of the given dimension."""
        if dimension < 1:
            raise ValueError(f"Dimension must be positive, got {dimension}")
        return self._intern(IdentityTransform(dimension))

    def linear(self, matrix: Matrix | Sequence[Sequence[float]]) -> MathTransform:
        """Linear transform from an augmented ``(target+1) x (source+1)`` matrix."""
        if not isinstance(matrix, Matrix):
            matrix = Matrix(matrix)
        return self._intern(create_linear(matrix))

    def pass_through(self, first_affected: int, inner: MathTransform, trailing: int = 0) -> MathTransform:
        """Apply ``inner`` to a sub-range of the coordinates, copying the others.

        Raises:
            ValueError: If an ordinate count is negative
        """
        return self._intern(create_pass_through(first_affected, inner, trailing))

    def projection(self, kind: str, parameters: BaseModel | dict[str, Any] | None = None) -> MathTransform:
        """Create a projection or datum transform by operation method name.

        Raises:
            TransformError: If the kind is unknown
            pydantic.ValidationError: If the parameters are invalid
        """
        transform = create_projection(kind, parameters)
        logger.debug("Created projection", {"kind": kind})
        return self._intern(transform)

    # ------------------------------------------------------------------
    # Concatenation
    # ------------------------------------------------------------------

    def concatenate(self, t1: MathTransform, t2: MathTransform, *more: MathTransform) -> MathTransform:
        """Chain transforms, ``t1`` applied first.

        Raises:
            DimensionMismatchError: If the target of a step is not the source of the next
        """
        result = self._concatenate(t1, t2)
        for step in more:
            result = self._concatenate(result, step)
        return result

    def _concatenate(self, t1: MathTransform, t2: MathTransform) -> MathTransform:
        if t1.dim_target != t2.dim_source:
            raise DimensionMismatchError(found=t2.dim_source, expected=t1.dim_target)
        simplified = self._simplify(t1, t2)
        if simplified is not None:
            return simplified

        # Re-associate so that a step can merge with its neighbour in a nested chain
        if isinstance(t1, ConcatenatedTransform):
            merged = self._simplify(t1.second, t2)
            if merged is not None:
                logger.debug("Re-associated concatenation", {"side": "first"})
                return self._concatenate(t1.first, merged)
        if isinstance(t2, ConcatenatedTransform):
            merged = self._simplify(t1, t2.first)
            if merged is not None:
                logger.debug("Re-associated concatenation", {"side": "second"})
                return self._concatenate(merged, t2.second)

        return self._intern(ConcatenatedTransform.create(t1, t2, self))

    def _simplify(self, t1: MathTransform, t2: MathTransform) -> MathTransform | None:
        """Optimized equivalent of ``t2(t1(p))`` without a generic node, or None."""
        if t1.is_identity():
            return t2
        if t2.is_identity():
            return t1
        if _are_inverse(t1, t2):
            logger.debug("Cancelled inverse pair", {"type": type(t1).__name__})
            return self.identity(t1.dim_source)
        if isinstance(t1, LinearTransform) and isinstance(t2, LinearTransform):
            logger.debug(
                "Fused linear transforms",
                {"source": t1.dim_source, "target": t2.dim_target},
            )
            return self.linear(t2.matrix.multiply(t1.matrix))
        combined = t1._concatenate(t2, False)
        if combined is None:
            combined = t2._concatenate(t1, True)
        if combined is not None:
            logger.debug("Combined through transform hook", {"type": type(combined).__name__})
            return self._intern(combined)
        return None

    # ------------------------------------------------------------------
    # Dimension filtering
    # ------------------------------------------------------------------

    def filter_input_dims(self, transform: MathTransform, indices: Iterable[int]) -> MathTransform:
        """Transform restricted to the given source dimensions.

        Raises:
            NotSeparableError: If a kept output depends on a dropped input
        """
        separated, _ = self._filter.separate_input(transform, indices)
        return separated

    def separate_input(
        self, transform: MathTransform, indices: Iterable[int]
    ) -> tuple[MathTransform, list[int]]:
        """Like :meth:`filter_input_dims`, also returning the retained target dimensions."""
        return self._filter.separate_input(transform, indices)

    def filter_output_dims(self, transform: MathTransform, indices: Iterable[int]) -> MathTransform:
        """Transform producing only the given target dimensions."""
        return self._filter.separate_output(transform, indices)

    def sub_transform(self, lower: int, upper: int, transform: MathTransform) -> MathTransform:
        """Transform producing the target dimensions ``lower`` to ``upper - 1``.

        Raises:
            ValueError: If the range is empty or outside the target dimensions
        """
        if not 0 <= lower < upper <= transform.dim_target:
            raise ValueError(
                f"Invalid dimension range [{lower}, {upper}) for {transform.dim_target} targets"
            )
        return self.filter_output_dims(transform, range(lower, upper))

    # ------------------------------------------------------------------
    # Declarative chains
    # ------------------------------------------------------------------

    def from_config(self, chain: TransformChain | str | Path) -> MathTransform:
        """Build the transform described by a chain or a chain file.

        Raises:
            FileNotFoundError: If a chain file doesn't exist
            ConfigError: If the chain is empty or a step can't be built
        """
        if not isinstance(chain, TransformChain):
            chain = load_config(chain)
        if not chain.steps:
            raise ConfigError("Transform chain has no steps")
        try:
            result = self._build_step(chain.steps[0])
            for step in chain.steps[1:]:
                result = self.concatenate(result, self._build_step(step))
        except (TransformError, ValueError) as e:
            raise ConfigError(f"Cannot build transform chain {chain.name or ''}: {e}") from e
        logger.info(
            "Built transform chain",
            {"name": chain.name, "steps": len(chain.steps), "dims": (result.dim_source, result.dim_target)},
        )
        return result

    def _build_step(self, step: Step) -> MathTransform:
        if isinstance(step, AffineStep):
            return self.linear(step.matrix)
        if isinstance(step, ProjectionStep):
            transform = self.projection(step.kind, step.parameters)
            return transform.invert() if step.inverse else transform
        if isinstance(step, PassThroughStep):
            return self.pass_through(step.first_affected, self._build_step(step.step), step.trailing)
        raise ConfigError(f"Unknown step type {type(step).__name__}")


_default_lock = threading.Lock()
_default: TransformFactory | None = None


def default_factory() -> TransformFactory:
    """Process-scoped factory with its own pool."""
    global _default
    with _default_lock:
        if _default is None:
            _default = TransformFactory()
        return _default


__all__ = ["TransformFactory", "default_factory"]
