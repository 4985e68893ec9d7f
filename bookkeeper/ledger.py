"""Company-scoped reads and writes over the transaction ledger."""
from __future__ import annotations

import logging
from decimal import Decimal

from .access import AccessGuard, payload_company, requires_access
from .database import SQLiteRepository
from .errors import ValidationFailed
from .models import (
    TRANSACTION_KINDS,
    Category,
    Client,
    Company,
    NewCategory,
    NewClient,
    NewTransaction,
    Transaction,
    TransactionPage,
)

logger = logging.getLogger(__name__)


class LedgerRepository:
    """CRUD over transactions, clients and categories, always inside one tenant."""

    def __init__(self, repository: SQLiteRepository, guard: AccessGuard) -> None:
        self._repository = repository
        self.guard = guard

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------
    def list_companies_for_user(self, user_id: str) -> list[Company]:
        """Return owned and member companies, each company once."""

        companies: dict[int, Company] = {}
        for company in self._repository.list_owned_companies(user_id):
            companies.setdefault(company.id, company)
        for company in self._repository.list_member_companies(user_id):
            companies.setdefault(company.id, company)
        return sorted(companies.values(), key=lambda company: (company.name, company.id))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    @requires_access()
    def list_transactions(self, company_id: int, user_id: str, page: int = 1, page_size: int = 10) -> TransactionPage:
        if page < 1 or page_size < 1:
            raise ValidationFailed("page and page size must be positive")
        offset = (page - 1) * page_size
        rows = self._repository.list_transaction_rows(company_id, limit=page_size, offset=offset)
        return TransactionPage(
            transactions=rows,
            total=self._repository.count_transactions(company_id),
            page=page,
            page_size=page_size,
        )

    def get_transaction(self, transaction_id: int, user_id: str) -> Transaction:
        return self.guard.require_entity(self._repository.get_transaction, transaction_id, user_id)

    @requires_access(payload_company)
    def create_transaction(self, payload: NewTransaction, user_id: str) -> Transaction:
        self.validate_transaction(payload)
        transaction = self._repository.insert_transaction(payload, created_by=user_id)
        logger.info(
            "User %s recorded %s transaction %s for company %s",
            user_id,
            transaction.kind,
            transaction.id,
            transaction.company_id,
        )
        return transaction

    def update_transaction(self, transaction_id: int, user_id: str, payload: NewTransaction) -> Transaction:
        existing = self.get_transaction(transaction_id, user_id)
        if payload.company_id != existing.company_id:
            raise ValidationFailed("A transaction cannot move to another company")
        if payload.kind != existing.kind:
            raise ValidationFailed("A transaction's kind cannot change after creation")
        self.validate_transaction(payload)
        return self._repository.update_transaction(transaction_id, payload)

    def delete_transaction(self, transaction_id: int, user_id: str) -> None:
        existing = self.get_transaction(transaction_id, user_id)
        self._repository.delete_transaction(existing.id)
        logger.info("User %s deleted transaction %s", user_id, existing.id)

    def validate_transaction(self, payload: NewTransaction) -> None:
        """Check the invariants a route-level schema cannot see."""

        if payload.kind not in TRANSACTION_KINDS:
            raise ValidationFailed(f"Unknown transaction kind: {payload.kind}")
        if Decimal(payload.amount) < 0:
            raise ValidationFailed("Transaction amount cannot be negative")
        if payload.category_id is not None:
            category = self._repository.get_category(payload.category_id)
            if category is None or category.company_id != payload.company_id:
                raise ValidationFailed("Category does not belong to this company")
            if category.kind != payload.kind:
                raise ValidationFailed("Category kind does not match the transaction kind")
        if payload.client_id is not None:
            client = self._repository.get_client(payload.client_id)
            if client is None or client.company_id != payload.company_id:
                raise ValidationFailed("Client does not belong to this company")

    # ------------------------------------------------------------------
    # Clients and categories
    # ------------------------------------------------------------------
    @requires_access()
    def list_clients(self, company_id: int, user_id: str) -> list[Client]:
        return self._repository.list_clients(company_id)

    @requires_access(payload_company)
    def create_client(self, payload: NewClient, user_id: str) -> Client:
        return self._repository.insert_client(payload)

    @requires_access()
    def list_categories(self, company_id: int, user_id: str) -> list[Category]:
        return self._repository.list_categories(company_id)

    @requires_access(payload_company)
    def create_category(self, payload: NewCategory, user_id: str) -> Category:
        if payload.kind not in TRANSACTION_KINDS:
            raise ValidationFailed(f"Unknown category kind: {payload.kind}")
        [category] = self._repository.insert_categories([payload])
        return category
