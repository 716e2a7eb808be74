"""Exponential and logarithmic 1-D transforms.

These take part in concatenation through the ``_concatenate`` hook: an
exponential next to a linear transform folds into a single exponential, and an
exponential next to a logarithm of the same base collapses to a linear
transform.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.errors import NonInvertibleTransformError
from .base import MathTransform, MathTransform1D, param_mt
from .linear import LinearTransform1D


def create_exponential(base: float, scale: float = 1.0) -> MathTransform1D:
    """Return ``y = scale * base**x``, degenerating to constants where it applies."""
    if base == 0 or scale == 0:
        return LinearTransform1D.create(0.0, 0.0)
    if base == 1:
        return LinearTransform1D.create(0.0, scale)
    return ExponentialTransform1D(base, scale)


class ExponentialTransform1D(MathTransform1D):
    """``y = scale * base**x``."""

    def __init__(self, base: float, scale: float = 1.0):
        super().__init__()
        if not base > 0 or base == 1:
            raise ValueError(f"Exponential base must be positive and not 1, got {base}")
        self.base = float(base)
        self.scale = float(scale)
        self.ln_base = math.log(self.base)

    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        with np.errstate(over="ignore", invalid="ignore"):
            return self.scale * np.power(self.base, values)

    def _evaluate_derivative(self, values: np.ndarray) -> np.ndarray:
        return self.ln_base * self._evaluate(values)

    def _create_inverse(self) -> MathTransform:
        if self.scale < 0:
            raise NonInvertibleTransformError("Exponential with a negative scale has no real inverse")
        return LogarithmicTransform1D(self.base, -math.log(self.scale) / self.ln_base)

    def _concatenate(self, other: MathTransform, apply_other_first: bool) -> MathTransform | None:
        if isinstance(other, LinearTransform1D):
            if apply_other_first:
                new_base = self.base**other.scale
                new_scale = self.base**other.offset * self.scale
                if not (math.isnan(new_base) or math.isnan(new_scale)):
                    return create_exponential(new_base, new_scale)
            elif other.offset == 0:
                return create_exponential(self.base, self.scale * other.scale)
        elif isinstance(other, LogarithmicTransform1D):
            return self._concatenate_log(other, apply_other_first)
        return None

    def _concatenate_log(
        self, other: LogarithmicTransform1D, apply_other_first: bool
    ) -> MathTransform | None:
        if apply_other_first:
            # scale * base**(log(x) + offset) is a power law of x
            new_scale = self.scale * self.base**other.offset
            new_power = self.ln_base / other.ln_base
            if not math.isnan(new_scale) and new_power == 1:
                return LinearTransform1D.create(new_scale, 0.0)
        elif self.scale > 0:
            return LinearTransform1D.create(
                self.ln_base / other.ln_base,
                math.log(self.scale) / other.ln_base + other.offset,
            )
        return None

    def _key(self) -> tuple[Any, ...]:
        return (self.base, self.scale)

    def __str__(self) -> str:
        params: list[tuple[str, Any]] = [("base", self.base)]
        if self.scale != 1:
            params.append(("scale", self.scale))
        return param_mt("Exponential", params)


class LogarithmicTransform1D(MathTransform1D):
    """``y = log(x) / log(base) + offset``. Non-positive inputs give NaN."""

    def __init__(self, base: float = 10.0, offset: float = 0.0):
        super().__init__()
        if not base > 0 or base == 1:
            raise ValueError(f"Logarithm base must be positive and not 1, got {base}")
        self.base = float(base)
        self.offset = float(offset)
        self.ln_base = math.log(self.base)

    def _evaluate(self, values: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.log(values) / self.ln_base + self.offset

    def _evaluate_derivative(self, values: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore"):
            return 1.0 / (values * self.ln_base)

    def _create_inverse(self) -> MathTransform:
        return create_exponential(self.base, self.base ** (-self.offset))

    def _concatenate(self, other: MathTransform, apply_other_first: bool) -> MathTransform | None:
        if isinstance(other, LinearTransform1D):
            if apply_other_first:
                # log(s*x) = log(x) + log(s)
                if other.offset == 0 and other.scale > 0:
                    return LogarithmicTransform1D(
                        self.base, self.offset + math.log(other.scale) / self.ln_base
                    )
            elif other.scale == 1:
                return LogarithmicTransform1D(self.base, self.offset + other.offset)
        elif isinstance(other, ExponentialTransform1D):
            return other._concatenate_log(self, not apply_other_first)
        return None

    def _key(self) -> tuple[Any, ...]:
        return (self.base, self.offset)

    def __str__(self) -> str:
        params: list[tuple[str, Any]] = [("base", self.base)]
        if self.offset != 0:
            params.append(("offset", self.offset))
        return param_mt("Logarithmic", params)


__all__ = [
    "ExponentialTransform1D",
    "LogarithmicTransform1D",
    "create_exponential",
]
