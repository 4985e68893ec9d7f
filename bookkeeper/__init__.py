"""Multi-tenant bookkeeping backend: ledger access control, dashboards and reports."""
from __future__ import annotations

from .errors import BookkeepingError, NotFound, Unauthorized, ValidationFailed
from .services import BookkeepingService

__version__ = "0.1.0"

__all__ = [
    "BookkeepingError",
    "BookkeepingService",
    "NotFound",
    "Unauthorized",
    "ValidationFailed",
]
