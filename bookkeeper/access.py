"""Tenant access checks shared by every scoped operation."""
from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from .database import SQLiteRepository
from .errors import Unauthorized
from .models import Company

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AccessGuard:
    """Decide whether a user may act on a company.

    A user has access when they own the company or hold a membership row for
    it.  Nothing is cached: every call reads the current rows, so a revoked
    membership takes effect on the next request.
    """

    def __init__(self, repository: SQLiteRepository) -> None:
        self._repository = repository

    def has_access(self, company_id: int, user_id: str) -> bool:
        company = self._repository.get_company(company_id)
        if company is None:
            return False
        if company.owner_id == user_id:
            return True
        return self._repository.get_membership(company_id, user_id) is not None

    def require(self, company_id: int, user_id: str) -> None:
        """Raise :class:`Unauthorized` unless ``user_id`` may act on the company."""

        if not self.has_access(company_id, user_id):
            logger.warning("Denied user %s access to company %s", user_id, company_id)
            raise Unauthorized()

    def require_owner(self, company_id: int, user_id: str) -> Company:
        company = self._repository.get_company(company_id)
        if company is None or company.owner_id != user_id:
            logger.warning("Denied user %s owner rights on company %s", user_id, company_id)
            raise Unauthorized()
        return company

    def require_entity(
        self,
        loader: Callable[[int], Optional[T]],
        entity_id: int,
        user_id: str,
        company_of: Callable[[T], int] = lambda entity: entity.company_id,
    ) -> T:
        """Load a child entity by its own id and check access on its company.

        A missing entity is reported exactly like a forbidden one, so callers
        cannot probe for ids that belong to other tenants.
        """

        entity = loader(entity_id)
        if entity is None:
            logger.warning("User %s requested missing entity %s", user_id, entity_id)
            raise Unauthorized()
        self.require(company_of(entity), user_id)
        return entity


def requires_access(company_id_of: Optional[Callable[[Any], int]] = None):
    """Decorate a service method whose first argument names a company.

    The decorated method is called as ``method(self, subject, user_id, ...)``.
    ``subject`` is either the company id itself or a payload from which
    ``company_id_of`` extracts it.  The owning service must expose its
    :class:`AccessGuard` as ``self.guard``.
    """

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, subject, user_id, *args, **kwargs):
            company_id = subject if company_id_of is None else company_id_of(subject)
            self.guard.require(company_id, user_id)
            return method(self, subject, user_id, *args, **kwargs)

        return wrapper

    return decorator


def payload_company(payload: Any) -> int:
    return payload.company_id


__all__ = ["AccessGuard", "requires_access", "payload_company"]
