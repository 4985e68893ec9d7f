"""Profit-and-loss and cash-flow reports over an inclusive date range."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from dateutil import parser as date_parser

from .access import AccessGuard, requires_access
from .database import SQLiteRepository
from .errors import ValidationFailed
from .models import (
    EXPENSE,
    INCOME,
    CashFlowEntry,
    CashFlowReport,
    ProfitAndLoss,
    ReportPeriod,
    to_money,
)


class ReportEngine:
    def __init__(self, repository: SQLiteRepository, guard: AccessGuard) -> None:
        self._repository = repository
        self.guard = guard

    @requires_access()
    def profit_and_loss(
        self,
        company_id: int,
        user_id: str,
        start_date: date | str,
        end_date: date | str,
    ) -> ProfitAndLoss:
        """Sum income and expenses per category name.

        Transactions without a category are grouped under ``None`` rather
        than dropped, so the per-category totals always add up to the
        headline totals.
        """

        period = _period(start_date, end_date)
        income = self._repository.category_totals(company_id, INCOME, period.start_date, period.end_date)
        expenses = self._repository.category_totals(company_id, EXPENSE, period.start_date, period.end_date)
        total_income = to_money(sum((group.total for group in income), Decimal("0")))
        total_expenses = to_money(sum((group.total for group in expenses), Decimal("0")))
        return ProfitAndLoss(
            period=period,
            income=income,
            expenses=expenses,
            total_income=total_income,
            total_expenses=total_expenses,
            net_profit=total_income - total_expenses,
        )

    @requires_access()
    def cash_flow(
        self,
        company_id: int,
        user_id: str,
        start_date: date | str,
        end_date: date | str,
    ) -> CashFlowReport:
        """List every transaction in the range with the balance after it.

        Rows are ordered by date and then id, so re-running the report over
        the same ledger yields the same sequence.
        """

        period = _period(start_date, end_date)
        running_balance = to_money(0)
        entries: list[CashFlowEntry] = []
        for row in self._repository.transaction_rows_between(company_id, period.start_date, period.end_date):
            if row.kind == INCOME:
                running_balance += row.amount
            else:
                running_balance -= row.amount
            entries.append(
                CashFlowEntry(
                    id=row.id,
                    date=row.date,
                    kind=row.kind,
                    amount=row.amount,
                    description=row.description,
                    category_name=row.category_name,
                    running_balance=running_balance,
                )
            )
        return CashFlowReport(period=period, entries=entries, final_balance=running_balance)


def _period(start_date: date | str, end_date: date | str) -> ReportPeriod:
    start = _coerce_date(start_date)
    end = _coerce_date(end_date)
    if start > end:
        raise ValidationFailed("Report start date must not be after its end date")
    return ReportPeriod(start_date=start, end_date=end)


def _coerce_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(str(value)).date()
    except (ValueError, OverflowError) as exc:
        raise ValidationFailed(f"Invalid date: {value}") from exc
