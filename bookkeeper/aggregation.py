"""Dashboard figures derived from a company ledger."""
from __future__ import annotations

import calendar
from datetime import date
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from .access import AccessGuard, requires_access
from .database import SQLiteRepository
from .models import (
    EXPENSE,
    INCOME,
    OUTSTANDING_STATUS,
    ChartBuckets,
    Dashboard,
    DashboardSummary,
)

RECENT_TRANSACTIONS = 5
CHART_MONTHS = 6


def month_bounds(day: date) -> tuple[date, date]:
    """Return the first and last calendar day of the month containing ``day``."""

    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


class AggregationEngine:
    """Compute the dashboard payload for one company.

    The queries run independently and outside any transaction, so a
    concurrent writer may be visible in some figures and not in others.
    """

    def __init__(self, repository: SQLiteRepository, guard: AccessGuard, today: Callable[[], date] = date.today) -> None:
        self._repository = repository
        self.guard = guard
        self._today = today

    @requires_access()
    def get_dashboard(self, company_id: int, user_id: str, today: Optional[date] = None) -> Dashboard:
        today = today or self._today()
        return Dashboard(
            summary=self._summary(company_id, today),
            recent_transactions=self._repository.list_transaction_rows(company_id, limit=RECENT_TRANSACTIONS),
            charts=self._charts(company_id, today),
        )

    def _summary(self, company_id: int, today: date) -> DashboardSummary:
        start, end = month_bounds(today)
        total_revenue = self._repository.sum_transactions(company_id, INCOME, start, end)
        total_expenses = self._repository.sum_transactions(company_id, EXPENSE, start, end)
        return DashboardSummary(
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_profit=total_revenue - total_expenses,
            outstanding_invoices=self._repository.sum_invoices(company_id, OUTSTANDING_STATUS),
        )

    def _charts(self, company_id: int, today: date) -> ChartBuckets:
        since = today - relativedelta(months=CHART_MONTHS)
        charts = ChartBuckets()
        for bucket in self._repository.monthly_totals(company_id, since):
            if bucket.kind == INCOME:
                charts.revenue.append(bucket)
            else:
                charts.expenses.append(bucket)
        return charts
