"""Custom exception types for coordinate transforms."""


class GeoxformError(Exception):
    """Base exception for all geoxform errors."""

    pass


class ConfigError(GeoxformError):
    """Configuration-related errors."""

    pass


class TransformError(GeoxformError):
    """A transform could not be built or applied."""

    pass


class DimensionMismatchError(TransformError):
    """Operand dimensions are incompatible."""

    def __init__(self, message: str | None = None, *, found: int | None = None,
                 expected: int | None = None):
        if message is None:
            message = f"Mismatched dimension: got {found}, expected {expected}"
        super().__init__(message)
        self.found = found
        self.expected = expected


class NonInvertibleTransformError(TransformError):
    """The transform has no inverse."""

    pass


class SingularMatrixError(NonInvertibleTransformError):
    """The matrix is singular."""

    pass


class NotSeparableError(TransformError):
    """Requested dimensions depend on dimensions that were not requested."""

    pass


class ProjectionError(TransformError):
    """A map projection failed for a point."""

    pass


class OutOfDomainError(ProjectionError):
    """Point or parameter outside the valid domain of a projection."""

    pass


class NonConvergenceError(ProjectionError):
    """An iterative computation exceeded its iteration budget."""

    pass


__all__ = [
    "GeoxformError",
    "ConfigError",
    "TransformError",
    "DimensionMismatchError",
    "NonInvertibleTransformError",
    "SingularMatrixError",
    "NotSeparableError",
    "ProjectionError",
    "OutOfDomainError",
    "NonConvergenceError",
]
