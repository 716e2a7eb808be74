"""Interning pool for transforms.

Structurally equal transforms are replaced by one shared instance. The pool
holds its values weakly, so interning never extends a transform's lifetime.
"""

from __future__ import annotations

import threading
import weakref
from typing import Any, TypeVar

from ..core.logging import get_logger
from .base import MathTransform

logger = get_logger(__name__)

T = TypeVar("T", bound=MathTransform)


class TransformPool:
    """Thread-safe weak-valued canonicalization map."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: weakref.WeakValueDictionary[Any, MathTransform] = (
            weakref.WeakValueDictionary()
        )

    def intern(self, transform: T) -> T:
        """Return the pooled instance equal to ``transform``, adding it if absent."""
        key = (type(transform), transform._key())
        with self._lock:
            existing = self._values.get(key)
            if existing is not None:
                logger.debug("Reusing pooled transform", {"type": type(transform).__name__})
                return existing  # type: ignore[return-value]
            self._values[key] = transform
            return transform

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, transform: object) -> bool:
        if not isinstance(transform, MathTransform):
            return False
        key = (type(transform), transform._key())
        with self._lock:
            return self._values.get(key) is transform


__all__ = ["TransformPool"]
