"""
Tests for invoice creation and detail lookups.
"""
from datetime import date
from decimal import Decimal

import pytest

from bookkeeper.errors import Unauthorized, ValidationFailed
from bookkeeper.models import NewClient, NewInvoice, NewInvoiceItem

from tests.conftest import MEMBER, OUTSIDER, OWNER


def _header(company_id, number="INV-001", client_id=None, **overrides):
    fields = dict(
        company_id=company_id,
        invoice_number=number,
        status="sent",
        client_id=client_id,
        issue_date=date(2024, 3, 1),
        due_date=date(2024, 3, 31),
        subtotal=Decimal("300.00"),
        tax_amount=Decimal("45.00"),
        total=Decimal("345.00"),
        notes="Net 30",
    )
    fields.update(overrides)
    return NewInvoice(**fields)


def _items():
    return [
        NewInvoiceItem(description="Design", quantity=Decimal("2"), unit_price=Decimal("100.00"), total=Decimal("200.00")),
        NewInvoiceItem(description="Hosting", quantity=Decimal("1"), unit_price=Decimal("60.00"), total=Decimal("60.00")),
        NewInvoiceItem(description="Support", quantity=Decimal("0.5"), unit_price=Decimal("80.00"), total=Decimal("40.00")),
    ]


class TestCreateInvoice:
    def test_details_return_every_item_and_preserve_total(self, service, company, client):
        invoice = service.create_invoice(_header(company.id, client_id=client.id), OWNER, _items())

        details = service.get_invoice_details(invoice.id, OWNER)

        assert len(details.items) == 3
        assert {item.invoice_id for item in details.items} == {invoice.id}
        assert [item.description for item in details.items] == ["Design", "Hosting", "Support"]
        assert details.items[2].quantity == Decimal("0.5")
        assert details.total == Decimal("345.00")
        assert details.subtotal + details.tax_amount == details.total
        assert details.client.name == "Noor Supplies"
        assert details.client.email == "ap@noor.example"

    def test_total_is_not_recomputed_from_items(self, service, company):
        items = [NewInvoiceItem(description="Odd", quantity=Decimal("1"), unit_price=Decimal("1"), total=Decimal("1"))]

        invoice = service.create_invoice(_header(company.id), OWNER, items)

        assert service.get_invoice_details(invoice.id, OWNER).total == Decimal("345.00")

    def test_failed_item_insert_rolls_back_header(self, service, company):
        items = _items()
        items[1].description = None

        with pytest.raises(ValidationFailed):
            service.create_invoice(_header(company.id), OWNER, items)

        assert service.list_invoices(company.id, OWNER) == []

    def test_unexpected_item_failure_rolls_back_header(self, service, repository, company, monkeypatch):
        def explode(invoice_id, items):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repository, "insert_invoice_items", explode)

        with pytest.raises(RuntimeError):
            service.create_invoice(_header(company.id), OWNER, _items())

        assert service.list_invoices(company.id, OWNER) == []

    def test_total_must_match_subtotal_plus_tax(self, service, company):
        with pytest.raises(ValidationFailed):
            service.create_invoice(_header(company.id, total=Decimal("350.00")), OWNER, _items())

    def test_invoice_without_items_is_rejected(self, service, company):
        with pytest.raises(ValidationFailed) as excinfo:
            service.create_invoice(_header(company.id), OWNER, [])

        assert "line item" in excinfo.value.message
        assert service.list_invoices(company.id, OWNER) == []

    def test_unknown_status_is_rejected(self, service, company):
        with pytest.raises(ValidationFailed):
            service.create_invoice(_header(company.id, status="lost"), OWNER, _items())

    def test_invoice_number_is_unique_per_company(self, service, company, second_company):
        service.create_invoice(_header(company.id), OWNER, _items())
        service.create_invoice(_header(second_company.id), OUTSIDER, _items())

        with pytest.raises(ValidationFailed):
            service.create_invoice(_header(company.id), OWNER, _items())
        assert len(service.list_invoices(company.id, OWNER)) == 1

    def test_client_must_belong_to_company(self, service, company, second_company):
        foreign = service.create_client(NewClient(company_id=second_company.id, name="Foreign"), OUTSIDER)

        with pytest.raises(ValidationFailed):
            service.create_invoice(_header(company.id, client_id=foreign.id), OWNER, _items())

    def test_outsider_cannot_invoice_for_company(self, service, company):
        with pytest.raises(Unauthorized):
            service.create_invoice(_header(company.id), OUTSIDER, _items())


class TestInvoiceLookups:
    def test_details_check_the_invoice_company(self, service, company, second_company):
        invoice = service.create_invoice(_header(company.id), OWNER, _items())

        with pytest.raises(Unauthorized):
            service.get_invoice_details(invoice.id, OUTSIDER)

    def test_missing_invoice_is_unauthorized(self, service, company):
        with pytest.raises(Unauthorized):
            service.get_invoice_details(4040, OWNER)

    def test_member_can_read_details(self, service, company):
        invoice = service.create_invoice(_header(company.id), OWNER, _items())
        service.add_member(company.id, OWNER, MEMBER)

        details = service.get_invoice_details(invoice.id, MEMBER)

        assert details.client is None
        assert details.invoice_number == "INV-001"

    def test_list_is_newest_first_with_client(self, service, company, client):
        service.create_invoice(_header(company.id, "INV-001"), OWNER, _items())
        service.create_invoice(_header(company.id, "INV-002", client_id=client.id), OWNER, _items())

        invoices = service.list_invoices(company.id, OWNER)

        assert [inv.invoice_number for inv in invoices] == ["INV-002", "INV-001"]
        assert invoices[0].client.name == "Noor Supplies"
        assert invoices[1].client is None
