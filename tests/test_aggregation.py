"""
Tests for the dashboard aggregation.

TODAY is 2024-03-15, so the summary month is March 2024 and the chart window
starts on 2023-09-15.
"""
from datetime import date
from decimal import Decimal

import pytest

from bookkeeper.aggregation import month_bounds
from bookkeeper.errors import Unauthorized
from bookkeeper.models import NewInvoice, NewInvoiceItem

from tests.conftest import MEMBER, OWNER, TODAY, make_transaction


def _invoice(company_id, number, status, total, issued="2023-01-10"):
    return NewInvoice(
        company_id=company_id,
        invoice_number=number,
        status=status,
        issue_date=date.fromisoformat(issued),
        subtotal=Decimal(total),
        tax_amount=Decimal("0"),
        total=Decimal(total),
    )


def _line(total):
    return [NewInvoiceItem(description="Work", quantity=Decimal("1"), unit_price=Decimal(total), total=Decimal(total))]


def test_month_bounds_handles_leap_february():
    assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(date(2023, 12, 31)) == (date(2023, 12, 1), date(2023, 12, 31))


class TestDashboardScenario:
    def test_membership_unlocks_dashboard_with_zero_totals(self, service, company):
        with pytest.raises(Unauthorized):
            service.get_dashboard(company.id, MEMBER)

        service.add_member(company.id, OWNER, MEMBER)
        dashboard = service.get_dashboard(company.id, MEMBER)

        assert dashboard.summary.total_revenue == Decimal("0")
        assert dashboard.summary.total_expenses == Decimal("0")
        assert dashboard.summary.net_profit == Decimal("0")
        assert dashboard.summary.outstanding_invoices == Decimal("0")
        assert dashboard.recent_transactions == []
        assert dashboard.charts.revenue == []
        assert dashboard.charts.expenses == []

    def test_current_month_totals(self, service, company):
        service.add_member(company.id, OWNER, MEMBER)
        service.create_transaction(make_transaction(company.id, "income", 1000, TODAY), MEMBER)
        service.create_transaction(make_transaction(company.id, "expense", 400, TODAY), MEMBER)

        summary = service.get_dashboard(company.id, MEMBER).summary

        assert summary.total_revenue == Decimal("1000")
        assert summary.total_expenses == Decimal("400")
        assert summary.net_profit == Decimal("600")


class TestSummary:
    def test_month_boundaries_are_inclusive(self, service, company):
        for on in ("2024-02-29", "2024-03-01", "2024-03-31", "2024-04-01"):
            service.create_transaction(make_transaction(company.id, "income", 100, on), OWNER)

        summary = service.get_dashboard(company.id, OWNER).summary

        assert summary.total_revenue == Decimal("200")

    def test_explicit_today_moves_the_month(self, service, company):
        service.create_transaction(make_transaction(company.id, "expense", "75.50", "2024-02-10"), OWNER)

        summary = service.get_dashboard(company.id, OWNER, today=date(2024, 2, 1)).summary

        assert summary.total_expenses == Decimal("75.50")
        assert summary.net_profit == Decimal("-75.50")

    def test_decimal_sums_stay_exact(self, service, company):
        for amount in ("0.10", "0.20", "0.30"):
            service.create_transaction(make_transaction(company.id, "income", amount, TODAY), OWNER)

        assert service.get_dashboard(company.id, OWNER).summary.total_revenue == Decimal("0.60")

    def test_outstanding_counts_only_sent_invoices_of_any_date(self, service, company, second_company):
        service.create_invoice(_invoice(company.id, "INV-1", "sent", "300.00"), OWNER, _line("300.00"))
        service.create_invoice(_invoice(company.id, "INV-2", "sent", "200.00", issued="2024-03-01"), OWNER, _line("200.00"))
        service.create_invoice(_invoice(company.id, "INV-3", "paid", "999.00"), OWNER, _line("999.00"))
        service.create_invoice(_invoice(company.id, "INV-4", "draft", "50.00"), OWNER, _line("50.00"))
        service.create_invoice(_invoice(second_company.id, "INV-1", "sent", "70.00"), second_company.owner_id, _line("70.00"))

        summary = service.get_dashboard(company.id, OWNER).summary

        assert summary.outstanding_invoices == Decimal("500.00")


class TestRecentTransactions:
    def test_five_newest_by_creation_with_names(self, service, company, categories, client):
        created = [
            service.create_transaction(
                make_transaction(
                    company.id, "income", 10 * n, f"2024-01-{n + 1:02d}",
                    category_id=categories["Services"].id, client_id=client.id,
                ),
                OWNER,
            )
            for n in range(7)
        ]

        recent = service.get_dashboard(company.id, OWNER).recent_transactions

        assert [row.id for row in recent] == [tx.id for tx in reversed(created[2:])]
        assert all(row.category_name == "Services" for row in recent)
        assert all(row.client_name == "Noor Supplies" for row in recent)


class TestCharts:
    def test_buckets_cover_trailing_six_months_in_order(self, service, company):
        rows = [
            ("income", 999, "2023-09-14"),
            ("income", 100, "2023-09-15"),
            ("income", 50, "2023-09-30"),
            ("expense", 30, "2023-11-02"),
            ("income", 200, "2024-01-05"),
            ("expense", 80, "2024-01-20"),
            ("expense", 20, "2024-01-21"),
            ("income", 300, "2024-03-10"),
        ]
        for kind, amount, on in rows:
            service.create_transaction(make_transaction(company.id, kind, amount, on), OWNER)

        charts = service.get_dashboard(company.id, OWNER).charts

        assert [(b.year, b.month, b.total) for b in charts.revenue] == [
            (2023, 9, Decimal("150")),
            (2024, 1, Decimal("200")),
            (2024, 3, Decimal("300")),
        ]
        assert [(b.year, b.month, b.total) for b in charts.expenses] == [
            (2023, 11, Decimal("30")),
            (2024, 1, Decimal("100")),
        ]
        assert {b.kind for b in charts.revenue} == {"income"}
        assert {b.kind for b in charts.expenses} == {"expense"}
