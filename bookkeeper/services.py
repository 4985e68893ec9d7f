"""High-level application service orchestrating the bookkeeper backend.

:class:`BookkeepingService` is the single entry point the HTTP layer talks to.
It is built from an explicit :class:`SQLiteRepository` so tests and other
adapters can supply their own store.
"""
from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Sequence

from .access import AccessGuard
from .aggregation import AggregationEngine
from .companies import CompanyService
from .config import AppConfig
from .database import SQLiteRepository
from .importers import CsvSource, TransactionCsvImporter
from .invoices import InvoiceService
from .ledger import LedgerRepository
from .models import (
    CashFlowReport,
    Category,
    Client,
    Company,
    Dashboard,
    Invoice,
    InvoiceDetails,
    InvoiceSummary,
    Membership,
    NewCategory,
    NewClient,
    NewCompany,
    NewInvoice,
    NewInvoiceItem,
    NewTransaction,
    NewUser,
    ProfitAndLoss,
    Transaction,
    TransactionPage,
    User,
)
from .reports import ReportEngine


class BookkeepingService:
    """Coordinates access checks, ledger writes, dashboards and reports."""

    def __init__(
        self,
        config: AppConfig,
        repository: SQLiteRepository,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._config = config
        self._repository = repository
        self.guard = AccessGuard(repository)
        self.ledger = LedgerRepository(repository, self.guard)
        self.companies = CompanyService(repository, self.guard, config.default_currency)
        self.aggregation = AggregationEngine(repository, self.guard, today)
        self.reports = ReportEngine(repository, self.guard)
        self.invoices = InvoiceService(repository, self.guard)
        self.importer = TransactionCsvImporter(repository, self.ledger)

    @property
    def max_page_size(self) -> int:
        return self._config.max_page_size

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        return self._repository.get_user(user_id)

    def upsert_user(self, user: NewUser) -> User:
        return self._repository.upsert_user(user)

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------
    def list_companies_for_user(self, user_id: str) -> list[Company]:
        return self.ledger.list_companies_for_user(user_id)

    def create_company(self, payload: NewCompany, user_id: str) -> Company:
        return self.companies.create_company(payload, user_id)

    def get_company(self, company_id: int, user_id: str) -> Company:
        return self.companies.get_company(company_id, user_id)

    def add_member(self, company_id: int, user_id: str, member_id: str) -> Membership:
        return self.companies.add_member(company_id, user_id, member_id)

    def remove_member(self, company_id: int, user_id: str, member_id: str) -> None:
        self.companies.remove_member(company_id, user_id, member_id)

    def get_dashboard(self, company_id: int, user_id: str, today: Optional[date] = None) -> Dashboard:
        return self.aggregation.get_dashboard(company_id, user_id, today)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------
    def list_transactions(
        self,
        company_id: int,
        user_id: str,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> TransactionPage:
        return self.ledger.list_transactions(company_id, user_id, page, page_size or self._config.default_page_size)

    def create_transaction(self, payload: NewTransaction, user_id: str) -> Transaction:
        return self.ledger.create_transaction(payload, user_id)

    def update_transaction(self, transaction_id: int, user_id: str, payload: NewTransaction) -> Transaction:
        return self.ledger.update_transaction(transaction_id, user_id, payload)

    def delete_transaction(self, transaction_id: int, user_id: str) -> None:
        self.ledger.delete_transaction(transaction_id, user_id)

    def import_transactions(self, company_id: int, user_id: str, source: CsvSource) -> int:
        return self.importer.import_transactions(company_id, user_id, source)

    def list_clients(self, company_id: int, user_id: str) -> list[Client]:
        return self.ledger.list_clients(company_id, user_id)

    def create_client(self, payload: NewClient, user_id: str) -> Client:
        return self.ledger.create_client(payload, user_id)

    def list_categories(self, company_id: int, user_id: str) -> list[Category]:
        return self.ledger.list_categories(company_id, user_id)

    def create_category(self, payload: NewCategory, user_id: str) -> Category:
        return self.ledger.create_category(payload, user_id)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def list_invoices(self, company_id: int, user_id: str) -> list[InvoiceSummary]:
        return self.invoices.list_invoices(company_id, user_id)

    def create_invoice(self, header: NewInvoice, user_id: str, items: Sequence[NewInvoiceItem]) -> Invoice:
        return self.invoices.create_invoice(header, user_id, items)

    def get_invoice_details(self, invoice_id: int, user_id: str) -> InvoiceDetails:
        return self.invoices.get_invoice_details(invoice_id, user_id)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def profit_and_loss(self, company_id: int, user_id: str, start_date: date | str, end_date: date | str) -> ProfitAndLoss:
        return self.reports.profit_and_loss(company_id, user_id, start_date, end_date)

    def cash_flow(self, company_id: int, user_id: str, start_date: date | str, end_date: date | str) -> CashFlowReport:
        return self.reports.cash_flow(company_id, user_id, start_date, end_date)
