"""Invoice creation with line items, listings and detail lookups."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from .access import AccessGuard, payload_company, requires_access
from .database import SQLiteRepository
from .errors import ValidationFailed
from .models import (
    INVOICE_STATUSES,
    Invoice,
    InvoiceDetails,
    InvoiceSummary,
    NewInvoice,
    NewInvoiceItem,
    to_money,
)

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(self, repository: SQLiteRepository, guard: AccessGuard) -> None:
        self._repository = repository
        self.guard = guard

    @requires_access()
    def list_invoices(self, company_id: int, user_id: str) -> list[InvoiceSummary]:
        return self._repository.list_invoice_summaries(company_id)

    @requires_access(payload_company)
    def create_invoice(self, header: NewInvoice, user_id: str, items: Sequence[NewInvoiceItem]) -> Invoice:
        """Insert the invoice header and its line items as one unit.

        The header total is stored as supplied; it is checked against
        subtotal plus tax but never recomputed from the items.
        """

        self._validate(header, items)
        with self._repository.transaction():
            invoice = self._repository.insert_invoice(header, created_by=user_id)
            self._repository.insert_invoice_items(invoice.id, items)
        logger.info(
            "User %s created invoice %s with %d items for company %s",
            user_id,
            invoice.id,
            len(items),
            invoice.company_id,
        )
        return invoice

    def get_invoice_details(self, invoice_id: int, user_id: str) -> InvoiceDetails:
        invoice = self.guard.require_entity(self._repository.get_invoice, invoice_id, user_id)
        return InvoiceDetails(
            id=invoice.id,
            company_id=invoice.company_id,
            invoice_number=invoice.invoice_number,
            status=invoice.status,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            subtotal=invoice.subtotal,
            tax_amount=invoice.tax_amount,
            total=invoice.total,
            notes=invoice.notes,
            client=self._repository.get_invoice_client(invoice.id),
            items=self._repository.list_invoice_items(invoice.id),
        )

    def _validate(self, header: NewInvoice, items: Sequence[NewInvoiceItem]) -> None:
        if not items:
            raise ValidationFailed("An invoice needs at least one line item")
        if header.status not in INVOICE_STATUSES:
            raise ValidationFailed(f"Unknown invoice status: {header.status}")
        if min(Decimal(header.subtotal), Decimal(header.tax_amount), Decimal(header.total)) < 0:
            raise ValidationFailed("Invoice amounts cannot be negative")
        if to_money(header.subtotal) + to_money(header.tax_amount) != to_money(header.total):
            raise ValidationFailed("Invoice total must equal subtotal plus tax")
        if header.due_date is not None and header.due_date < header.issue_date:
            raise ValidationFailed("Invoice due date cannot precede its issue date")
        if header.client_id is not None:
            client = self._repository.get_client(header.client_id)
            if client is None or client.company_id != header.company_id:
                raise ValidationFailed("Client does not belong to this company")
        for item in items:
            if Decimal(item.quantity) < 0 or Decimal(item.unit_price) < 0:
                raise ValidationFailed("Invoice item quantity and price cannot be negative")
