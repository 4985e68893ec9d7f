"""Domain models used by the bookkeeper backend.

The classes defined here are intentionally lightweight data containers that do
not know anything about persistence or transport concerns.  Three families
live side by side:

* stored entities (:class:`Company`, :class:`Transaction`, ...) as read back
  from the repository,
* write payloads (``New*``) handed over by the route layer after schema
  validation,
* result structures returned by the dashboard and report engines, so the
  response shape is fixed by named fields rather than ad-hoc dictionaries.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_KINDS = frozenset({INCOME, EXPENSE})

INVOICE_STATUSES = frozenset({"draft", "sent", "paid", "overdue", "cancelled"})
OUTSTANDING_STATUS = "sent"

CENTS = Decimal("0.01")


def to_money(value: object) -> Decimal:
    """Return ``value`` as a two-place :class:`~decimal.Decimal`.

    ``None`` is treated as zero so empty aggregates read as zero totals.
    """

    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class User:
    """Profile of an externally authenticated user."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        if parts:
            return " ".join(parts)
        return self.email or self.id


@dataclass(slots=True)
class Company:
    id: int
    name: str
    currency: str
    tax_rate: Decimal
    owner_id: str
    logo: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class Membership:
    company_id: int
    user_id: str
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class Client:
    id: int
    company_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class Category:
    id: int
    company_id: int
    name: str
    kind: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class Transaction:
    """A single income or expense entry in a company ledger.

    ``kind`` and ``company_id`` are fixed once the row exists; ``amount`` is
    never negative, the sign is carried by ``kind``.
    """

    id: int
    company_id: int
    kind: str
    amount: Decimal
    description: str
    date: date
    created_by: str
    category_id: Optional[int] = None
    client_id: Optional[int] = None
    attachment_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class Invoice:
    id: int
    company_id: int
    invoice_number: str
    status: str
    issue_date: date
    due_date: Optional[date]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    created_by: str
    client_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class InvoiceItem:
    id: int
    invoice_id: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


# ---------------------------------------------------------------------------
# Write payloads
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class NewUser:
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


@dataclass(slots=True)
class NewCompany:
    name: str
    currency: Optional[str] = None
    tax_rate: Decimal = Decimal("0")
    logo: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


@dataclass(slots=True)
class NewClient:
    company_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(slots=True)
class NewCategory:
    company_id: int
    name: str
    kind: str
    description: Optional[str] = None


@dataclass(slots=True)
class NewTransaction:
    company_id: int
    kind: str
    amount: Decimal
    description: str
    date: date
    category_id: Optional[int] = None
    client_id: Optional[int] = None
    attachment_url: Optional[str] = None


@dataclass(slots=True)
class NewInvoice:
    company_id: int
    invoice_number: str
    issue_date: date
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    status: str = "draft"
    client_id: Optional[int] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


@dataclass(slots=True)
class NewInvoiceItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


# ---------------------------------------------------------------------------
# Read models and results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class TransactionRow:
    """Transaction annotated with the names of its optional references."""

    id: int
    kind: str
    amount: Decimal
    description: str
    date: date
    category_id: Optional[int]
    category_name: Optional[str]
    client_id: Optional[int]
    client_name: Optional[str]
    attachment_url: Optional[str]
    created_at: Optional[datetime]


@dataclass(slots=True)
class TransactionPage:
    transactions: list[TransactionRow]
    total: int
    page: int
    page_size: int


@dataclass(slots=True)
class DashboardSummary:
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    outstanding_invoices: Decimal


@dataclass(slots=True)
class ChartBucket:
    year: int
    month: int
    kind: str
    total: Decimal


@dataclass(slots=True)
class ChartBuckets:
    revenue: list[ChartBucket] = field(default_factory=list)
    expenses: list[ChartBucket] = field(default_factory=list)


@dataclass(slots=True)
class Dashboard:
    summary: DashboardSummary
    recent_transactions: list[TransactionRow]
    charts: ChartBuckets


@dataclass(slots=True)
class ReportPeriod:
    start_date: date
    end_date: date


@dataclass(slots=True)
class CategoryTotal:
    category_name: Optional[str]
    total: Decimal


@dataclass(slots=True)
class ProfitAndLoss:
    period: ReportPeriod
    income: list[CategoryTotal]
    expenses: list[CategoryTotal]
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal


@dataclass(slots=True)
class CashFlowEntry:
    id: int
    date: date
    kind: str
    amount: Decimal
    description: str
    category_name: Optional[str]
    running_balance: Decimal


@dataclass(slots=True)
class CashFlowReport:
    period: ReportPeriod
    entries: list[CashFlowEntry]
    final_balance: Decimal


@dataclass(slots=True)
class InvoiceClient:
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(slots=True)
class InvoiceSummary:
    """Invoice header as shown in listings."""

    id: int
    invoice_number: str
    status: str
    issue_date: date
    due_date: Optional[date]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: Optional[str]
    created_at: Optional[datetime]
    client: Optional[InvoiceClient]


@dataclass(slots=True)
class InvoiceDetails:
    id: int
    company_id: int
    invoice_number: str
    status: str
    issue_date: date
    due_date: Optional[date]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: Optional[str]
    client: Optional[InvoiceClient]
    items: list[InvoiceItem]


__all__ = [
    "INCOME",
    "EXPENSE",
    "TRANSACTION_KINDS",
    "INVOICE_STATUSES",
    "OUTSTANDING_STATUS",
    "to_money",
    "User",
    "Company",
    "Membership",
    "Client",
    "Category",
    "Transaction",
    "Invoice",
    "InvoiceItem",
    "NewUser",
    "NewCompany",
    "NewClient",
    "NewCategory",
    "NewTransaction",
    "NewInvoice",
    "NewInvoiceItem",
    "TransactionRow",
    "TransactionPage",
    "DashboardSummary",
    "ChartBucket",
    "ChartBuckets",
    "Dashboard",
    "ReportPeriod",
    "CategoryTotal",
    "ProfitAndLoss",
    "CashFlowEntry",
    "CashFlowReport",
    "InvoiceClient",
    "InvoiceSummary",
    "InvoiceDetails",
]
