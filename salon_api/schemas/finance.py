from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import blank_to_none
from .staff import MONTH_PATTERN


class TransactionCreate(BaseModel):
    """Record an income transaction."""
    appointment_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    type: Optional[str] = None
    amount: float = Field(..., ge=0)
    category: Optional[str] = None
    payment_method: Optional[str] = Field(None, description="cash, card, platform, ...")
    transaction_date: Optional[date] = Field(None, description="Defaults to today")
    notes: Optional[str] = None

    @field_validator("type", "category", "payment_method", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return blank_to_none(v)


class TransactionUpdate(BaseModel):
    appointment_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    type: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("type", "category", "payment_method", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return blank_to_none(v)


class TransactionRead(BaseModel):
    id: UUID
    appointment_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    type: Optional[str] = None
    amount: float
    category: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_date: date
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    """Record an expense."""
    expense_date: date = Field(..., description="YYYY-MM-DD")
    amount: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    memo: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _strip_category(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("memo", mode="before")
    @classmethod
    def _blank_memo(cls, v):
        return blank_to_none(v)


class ExpenseUpdate(BaseModel):
    expense_date: Optional[date] = None
    amount: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1)
    memo: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _strip_category(cls, v):
        return v.strip() if isinstance(v, str) else v


class ExpenseRead(BaseModel):
    id: UUID
    expense_date: date
    amount: float
    category: str
    memo: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FinanceRow(BaseModel):
    id: UUID
    type: Literal["income", "expense"]
    date: date
    amount: float
    memo: Optional[str] = None


class FinanceSummary(BaseModel):
    """Combined income/expense ledger page with period totals."""
    rows: List[FinanceRow]
    page: int
    page_size: int
    total: int
    total_pages: int
    sum_income: float
    sum_expense: float
    profit: float


# Budgets

class BudgetUpsert(BaseModel):
    """Set the budget of a category for a month; an existing one is replaced."""
    category: str = Field(..., min_length=1)
    month: str = Field(..., pattern=MONTH_PATTERN, description="YYYY-MM")
    budget_amount: float = Field(..., ge=0)

    @field_validator("category", mode="before")
    @classmethod
    def _strip_category(cls, v):
        return v.strip() if isinstance(v, str) else v


class BudgetRead(BaseModel):
    id: UUID
    category: str
    month: str
    budget_amount: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BudgetStatus(BaseModel):
    """Budget of one category against what was spent; id is None for categories spent without a budget."""
    id: Optional[UUID] = None
    category: str
    month: str
    budget_amount: float = 0
    spent_amount: float = 0
    percentage: float = Field(0, description="Spent over budget in percent, one decimal")
    is_over_budget: bool = False
    is_warning: bool = Field(False, description="At least 80% and under 100% spent")
    remaining: float = 0


class BudgetTotals(BaseModel):
    total_budget: float
    total_spent: float
    total_remaining: float
    over_budget_count: int
    warning_count: int


class BudgetOverview(BaseModel):
    month: str
    budgets: List[BudgetStatus]
    summary: BudgetTotals


# Forecast

class ForecastPoint(BaseModel):
    month: str
    actual: float
    predicted: Optional[float] = None


class SeriesForecast(BaseModel):
    data: List[ForecastPoint]
    trend: float = Field(..., description="Fitted change per month")
    predicted_next_month: float
    predicted_next_quarter: List[float]
    confidence: float = Field(..., description="0 to 1")


class ForecastSection(BaseModel):
    historical: List[ForecastPoint]
    forecast: SeriesForecast
    seasonality: Dict[int, float] = Field(..., description="Average amount per calendar month (1-12)")


class ProfitForecast(BaseModel):
    predicted_next_month: float
    predicted_next_quarter: List[float]


class ForecastSummary(BaseModel):
    avg_recent_revenue: float
    trend: float
    confidence: float
    months: int


class FinanceForecast(BaseModel):
    """Monthly revenue and expense history with linear projections."""
    revenue: ForecastSection
    expenses: ForecastSection
    profit: ProfitForecast
    summary: ForecastSummary


# Reports

class AmountByCategory(BaseModel):
    category: str
    amount: float


class ReportTotals(BaseModel):
    revenue: float
    expenses: float
    profit: float
    vat: float = Field(..., description="Output VAT estimated at 10% of revenue")


class FinanceReport(BaseModel):
    """Income statement for one month or quarter."""
    type: Literal["monthly", "quarterly"]
    period: str
    year: int
    month: Optional[int] = None
    quarter: Optional[int] = None
    date_from: date
    date_to: date
    summary: ReportTotals
    revenue_details: List[AmountByCategory]
    expense_details: List[AmountByCategory]
    transaction_count: int
    expense_count: int
