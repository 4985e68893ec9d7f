"""Company creation, display lookup and membership management."""
from __future__ import annotations

import logging

from .access import AccessGuard
from .database import SQLiteRepository
from .errors import NotFound, ValidationFailed
from .models import EXPENSE, INCOME, Company, Membership, NewCategory, NewCompany

logger = logging.getLogger(__name__)

# (name, kind, description) seeded into every new company.
DEFAULT_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Sales", INCOME, "Sales revenue"),
    ("Services", INCOME, "Service revenue"),
    ("Salaries", EXPENSE, "Employee salaries"),
    ("Rent", EXPENSE, "Office rent"),
    ("Raw Materials", EXPENSE, "Raw materials and supplies"),
    ("Marketing", EXPENSE, "Marketing and advertising"),
)


class CompanyService:
    def __init__(self, repository: SQLiteRepository, guard: AccessGuard, default_currency: str = "SAR") -> None:
        self._repository = repository
        self.guard = guard
        self._default_currency = default_currency

    def create_company(self, payload: NewCompany, user_id: str) -> Company:
        """Create a company owned by ``user_id`` together with its default categories.

        Both inserts share one transaction: if seeding the categories fails the
        company row is rolled back as well.
        """

        currency = (payload.currency or self._default_currency).upper()
        if payload.tax_rate < 0:
            raise ValidationFailed("Tax rate cannot be negative")
        with self._repository.transaction():
            company = self._repository.insert_company(payload, owner_id=user_id, currency=currency)
            self._repository.insert_categories(
                NewCategory(company_id=company.id, name=name, kind=kind, description=description)
                for name, kind, description in DEFAULT_CATEGORIES
            )
        logger.info("User %s created company %s", user_id, company.id)
        return company

    def get_company(self, company_id: int, user_id: str) -> Company:
        if not self.guard.has_access(company_id, user_id):
            raise NotFound("Company not found")
        company = self._repository.get_company(company_id)
        if company is None:
            raise NotFound("Company not found")
        return company

    def add_member(self, company_id: int, user_id: str, member_id: str) -> Membership:
        company = self.guard.require_owner(company_id, user_id)
        if member_id == company.owner_id:
            raise ValidationFailed("The owner already has access to this company")
        if self._repository.get_membership(company_id, member_id) is not None:
            raise ValidationFailed("User is already a member of this company")
        membership = self._repository.insert_membership(company_id, member_id)
        logger.info("User %s added member %s to company %s", user_id, member_id, company_id)
        return membership

    def remove_member(self, company_id: int, user_id: str, member_id: str) -> None:
        self.guard.require_owner(company_id, user_id)
        if not self._repository.delete_membership(company_id, member_id):
            raise NotFound("Membership not found")
        logger.info("User %s removed member %s from company %s", user_id, member_id, company_id)
