"""Error taxonomy surfaced by the bookkeeping core."""
from __future__ import annotations


class BookkeepingError(Exception):
    """Base class for every failure the core reports to its callers.

    ``kind`` is a stable identifier the HTTP layer maps to a status code;
    ``message`` is safe to show to the caller.
    """

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(BookkeepingError):
    """Raised when the caller may not act on a company, or the target is hidden."""

    kind = "unauthorized"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFound(BookkeepingError):
    """Raised when an entity is absent and saying so leaks nothing."""

    kind = "not_found"


class ValidationFailed(BookkeepingError):
    """Raised when a payload breaks a cross-field or cross-entity invariant."""

    kind = "validation_failed"


__all__ = [
    "BookkeepingError",
    "Unauthorized",
    "NotFound",
    "ValidationFailed",
]
