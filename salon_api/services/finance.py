from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from salon_api.core.errors import BadRequestError
from salon_api.db.models.finance import Budget
from salon_api.repositories.finance import BudgetRepository, ExpenseRepository, TransactionRepository
from salon_api.schemas.finance import (
    AmountByCategory,
    BudgetOverview,
    BudgetStatus,
    BudgetTotals,
    BudgetUpsert,
    FinanceForecast,
    FinanceReport,
    FinanceRow,
    FinanceSummary,
    ForecastPoint,
    ForecastSection,
    ForecastSummary,
    ProfitForecast,
    ReportTotals,
    SeriesForecast,
)
from salon_api.services.base import BaseService
from salon_api.services.staff import month_bounds, months_ago

FINANCE_TYPES = ("income", "expense")
FINANCE_SORT_KEYS = ("date", "amount")


class FinanceService(BaseService):
    """Combined income and expense ledger."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)
        self.expenses = ExpenseRepository(session, owner_id)

    async def rows(self, date_from: Optional[date], date_to: Optional[date], types: Iterable[str]) -> List[FinanceRow]:
        """Transactions as income rows and expenses as expense rows, both limited to the date range."""
        types = set(types)
        unknown = types - set(FINANCE_TYPES)
        if unknown:
            raise BadRequestError(f"Unknown finance type(s): {', '.join(sorted(unknown))}")

        rows: List[FinanceRow] = []
        if "income" in types:
            for t in await self.transactions.list_between(date_from, date_to):
                rows.append(
                    FinanceRow(id=t.id, type="income", date=t.transaction_date, amount=float(t.amount or 0), memo=t.category)
                )
        if "expense" in types:
            for e in await self.expenses.list_between(date_from, date_to):
                rows.append(
                    FinanceRow(id=e.id, type="expense", date=e.expense_date, amount=float(e.amount or 0), memo=e.category or e.memo)
                )
        return rows

    # PUBLIC_INTERFACE
    async def summary(
        self,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        types: Iterable[str] = FINANCE_TYPES,
        sort_key: str = "date",
        sort_dir: str = "desc",
        page: int = 1,
        page_size: int = 10,
    ) -> FinanceSummary:
        """
        One page of the combined ledger.

        Sums cover every transaction and expense in the date range regardless of
        the type filter; profit is income minus expense.
        """
        if sort_key not in FINANCE_SORT_KEYS:
            raise BadRequestError(f"sort_key must be one of {', '.join(FINANCE_SORT_KEYS)}")

        rows = await self.rows(date_from, date_to, types)
        rows.sort(key=lambda r: r.date if sort_key == "date" else r.amount, reverse=sort_dir == "desc")

        all_rows = await self.rows(date_from, date_to, FINANCE_TYPES)
        sum_income = sum(r.amount for r in all_rows if r.type == "income")
        sum_expense = sum(r.amount for r in all_rows if r.type == "expense")

        start = (page - 1) * page_size
        return FinanceSummary(
            rows=rows[start:start + page_size],
            page=page,
            page_size=page_size,
            total=len(rows),
            total_pages=max(1, math.ceil(len(rows) / page_size)),
            sum_income=round(sum_income, 2),
            sum_expense=round(sum_expense, 2),
            profit=round(sum_income - sum_expense, 2),
        )


WARNING_PERCENT = 80
VAT_RATE = 0.1
DEFAULT_REVENUE_TYPE = "sales"
MIN_FORECAST_MONTHS = 3
SHORT_HISTORY_CONFIDENCE = 0.3


class BudgetService(BaseService):
    """Monthly category budgets compared with recorded expenses."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.budgets = BudgetRepository(session, owner_id)
        self.expenses = ExpenseRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def upsert(self, payload: BudgetUpsert) -> Budget:
        """Create the (category, month) budget or replace its amount."""
        existing = await self.budgets.get_for_category(payload.category, payload.month)
        if existing is None:
            return await self.budgets.create(payload.model_dump())
        return await self.budgets.update(existing.id, {"budget_amount": payload.budget_amount})

    # PUBLIC_INTERFACE
    async def overview(self, month: str) -> BudgetOverview:
        """
        Every budget of the month with its spending, followed by categories that
        had expenses but no budget. Totals cover budgeted categories only.
        """
        start, end = month_bounds(month)
        spent: Dict[str, float] = defaultdict(float)
        for e in await self.expenses.list_between(start.date(), (end - timedelta(days=1)).date()):
            spent[e.category] += float(e.amount or 0)

        rows: List[BudgetStatus] = []
        for b in await self.budgets.list_for_month(month):
            amount = float(b.budget_amount or 0)
            used = spent.pop(b.category, 0.0)
            percentage = used / amount * 100 if amount > 0 else 0.0
            rows.append(
                BudgetStatus(
                    id=b.id,
                    category=b.category,
                    month=month,
                    budget_amount=amount,
                    spent_amount=used,
                    percentage=round(percentage, 1),
                    is_over_budget=used > amount,
                    is_warning=WARNING_PERCENT <= percentage < 100,
                    remaining=amount - used,
                )
            )
        budgeted = list(rows)
        for category in sorted(spent):
            rows.append(BudgetStatus(category=category, month=month, spent_amount=spent[category]))

        return BudgetOverview(
            month=month,
            budgets=rows,
            summary=BudgetTotals(
                total_budget=sum(r.budget_amount for r in budgeted),
                total_spent=sum(r.spent_amount for r in budgeted),
                total_remaining=sum(r.remaining for r in budgeted),
                over_budget_count=sum(1 for r in budgeted if r.is_over_budget),
                warning_count=sum(1 for r in budgeted if r.is_warning),
            ),
        )


def _linear_fit(values: List[float]) -> Tuple[float, float]:
    n = len(values)
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_xx = sum(i * i for i in range(n))
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    return slope, (sum_y - slope * sum_x) / n


def forecast_series(history: List[Tuple[str, float]]) -> SeriesForecast:
    """
    Least-squares line through monthly totals, projected three months ahead.

    Fewer than three months give a flat projection of the last value at 0.3
    confidence. Otherwise confidence is 1 minus the coefficient of variation,
    clamped to [0.1, 0.9]. Projections never go below zero.
    """
    if not history:
        return SeriesForecast(data=[], trend=0, predicted_next_month=0, predicted_next_quarter=[0, 0, 0], confidence=0)
    history = sorted(history)
    if len(history) < MIN_FORECAST_MONTHS:
        last = history[-1][1]
        return SeriesForecast(
            data=[ForecastPoint(month=m, actual=v) for m, v in history],
            trend=0,
            predicted_next_month=last,
            predicted_next_quarter=[last, 0, 0],
            confidence=SHORT_HISTORY_CONFIDENCE,
        )

    values = [v for _, v in history]
    slope, intercept = _linear_fit(values)
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    variation = math.sqrt(variance) / mean if mean > 0 else 1
    return SeriesForecast(
        data=[
            ForecastPoint(month=m, actual=v, predicted=max(0.0, slope * i + intercept))
            for i, (m, v) in enumerate(history)
        ],
        trend=slope,
        predicted_next_month=max(0.0, slope * n + intercept),
        predicted_next_quarter=[max(0.0, slope * (n + k) + intercept) for k in range(3)],
        confidence=max(0.1, min(0.9, 1 - variation)),
    )


def seasonality(history: List[Tuple[str, float]]) -> Dict[int, float]:
    """Average monthly total per calendar month, keyed 1-12."""
    buckets: Dict[int, List[float]] = defaultdict(list)
    for month, value in history:
        buckets[int(month[5:7])].append(value)
    return {m: sum(v) / len(v) for m, v in sorted(buckets.items())}


def _section(history: List[Tuple[str, float]]) -> ForecastSection:
    return ForecastSection(
        historical=[ForecastPoint(month=m, actual=v) for m, v in history],
        forecast=forecast_series(history),
        seasonality=seasonality(history),
    )


class FinanceAnalysisService(BaseService):
    """Projections and period statements over transactions and expenses."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)
        self.expenses = ExpenseRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def forecast(self, months: int = 12, today: Optional[date] = None) -> FinanceForecast:
        """Monthly revenue and expense totals since `months` months ago, each projected forward."""
        since = months_ago(today or date.today(), months)
        revenue: Dict[str, float] = defaultdict(float)
        for t in await self.transactions.list_between(since, None):
            revenue[t.transaction_date.strftime("%Y-%m")] += float(t.amount or 0)
        spending: Dict[str, float] = defaultdict(float)
        for e in await self.expenses.list_between(since, None):
            spending[e.expense_date.strftime("%Y-%m")] += float(e.amount or 0)

        revenue_section = _section(sorted(revenue.items()))
        expense_section = _section(sorted(spending.items()))
        income, cost = revenue_section.forecast, expense_section.forecast
        recent = [p.actual for p in revenue_section.historical[-3:]]
        return FinanceForecast(
            revenue=revenue_section,
            expenses=expense_section,
            profit=ProfitForecast(
                predicted_next_month=income.predicted_next_month - cost.predicted_next_month,
                predicted_next_quarter=[
                    a - b for a, b in zip(income.predicted_next_quarter, cost.predicted_next_quarter)
                ],
            ),
            summary=ForecastSummary(
                avg_recent_revenue=sum(recent) / len(recent) if recent else 0,
                trend=income.trend,
                confidence=income.confidence,
                months=months,
            ),
        )

    # PUBLIC_INTERFACE
    async def report(
        self,
        report_type: str = "monthly",
        *,
        year: int,
        month: Optional[int] = None,
        quarter: Optional[int] = None,
    ) -> FinanceReport:
        """
        Revenue, expenses, profit and estimated VAT for a calendar month or quarter.

        Revenue is broken down by transaction type ('sales' when unset) and
        expenses by category, both largest first.
        """
        if report_type == "quarterly":
            if quarter is None:
                raise BadRequestError("quarter is required for a quarterly report")
            first_month = (quarter - 1) * 3 + 1
            start, _ = month_bounds(f"{year:04d}-{first_month:02d}")
            _, end = month_bounds(f"{year:04d}-{first_month + 2:02d}")
            period = f"{year}-Q{quarter}"
            month = None
        else:
            if month is None:
                raise BadRequestError("month is required for a monthly report")
            period = f"{year:04d}-{month:02d}"
            start, end = month_bounds(period)
            quarter = None
        date_from, date_to = start.date(), (end - timedelta(days=1)).date()

        transactions = await self.transactions.list_between(date_from, date_to)
        expenses = await self.expenses.list_between(date_from, date_to)
        by_type: Dict[str, float] = defaultdict(float)
        for t in transactions:
            by_type[t.type or DEFAULT_REVENUE_TYPE] += float(t.amount or 0)
        by_category: Dict[str, float] = defaultdict(float)
        for e in expenses:
            by_category[e.category] += float(e.amount or 0)

        revenue = sum(by_type.values())
        spent = sum(by_category.values())
        return FinanceReport(
            type=report_type,
            period=period,
            year=year,
            month=month,
            quarter=quarter,
            date_from=date_from,
            date_to=date_to,
            summary=ReportTotals(revenue=revenue, expenses=spent, profit=revenue - spent, vat=round(revenue * VAT_RATE)),
            revenue_details=[
                AmountByCategory(category=k, amount=v) for k, v in sorted(by_type.items(), key=lambda kv: -kv[1])
            ],
            expense_details=[
                AmountByCategory(category=k, amount=v) for k, v in sorted(by_category.items(), key=lambda kv: -kv[1])
            ],
            transaction_count=len(transactions),
            expense_count=len(expenses),
        )
