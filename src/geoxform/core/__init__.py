"""Core module with types, units, matrix, errors, logging and config."""

__all__ = [
    "types",
    "units",
    "matrix",
    "errors",
    "logging",
    "config",
]
