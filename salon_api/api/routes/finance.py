from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import cached, revalidate_resource_cache
from salon_api.core.deps import get_audit_service, get_owner_id
from salon_api.db.session import get_async_session
from salon_api.repositories.customers import CustomerRepository
from salon_api.repositories.finance import BudgetRepository, ExpenseRepository, TransactionRepository
from salon_api.repositories.scheduling import AppointmentRepository
from salon_api.schemas.finance import (
    BudgetOverview,
    BudgetRead,
    BudgetUpsert,
    ExpenseCreate,
    ExpenseRead,
    ExpenseUpdate,
    FinanceForecast,
    FinanceReport,
    FinanceSummary,
    TransactionCreate,
    TransactionRead,
    TransactionUpdate,
)
from salon_api.schemas.staff import MONTH_PATTERN
from salon_api.services.audit import AuditService, snapshot
from salon_api.services.finance import FINANCE_TYPES, BudgetService, FinanceAnalysisService, FinanceService

router = APIRouter(tags=["Finance"])


async def _check_transaction_refs(session: AsyncSession, owner_id: UUID, values: Dict[str, Any]) -> None:
    if values.get("customer_id") is not None:
        await CustomerRepository(session, owner_id).find_by_id(values["customer_id"])
    if values.get("appointment_id") is not None:
        await AppointmentRepository(session, owner_id).find_by_id(values["appointment_id"])


# Transactions

# PUBLIC_INTERFACE
@router.get(
    "/transactions",
    response_model=List[TransactionRead],
    summary="List transactions",
    description="Income transactions, newest transaction_date first.",
)
async def list_transactions(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    customer_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Match on notes, category or payment method"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    async def fetch():
        rows = await TransactionRepository(session, owner_id).find_all(
            limit=limit, offset=offset, search=search, filters={"customer_id": customer_id}
        )
        return [TransactionRead.model_validate(r).model_dump(mode="json") for r in rows]

    return await cached("transactions", owner_id, fetch, customer_id, search, limit, offset)


# PUBLIC_INTERFACE
@router.post("/transactions", response_model=TransactionRead, status_code=201, summary="Create transaction")
async def create_transaction(
    payload: TransactionCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> TransactionRead:
    """Record income; transaction_date defaults to today."""
    values = payload.model_dump()
    if values.get("transaction_date") is None:
        values["transaction_date"] = date.today()
    await _check_transaction_refs(session, owner_id, values)
    transaction = await TransactionRepository(session, owner_id).create(values)
    await revalidate_resource_cache("transactions", owner_id)
    result = TransactionRead.model_validate(transaction)
    await audit.record("create", "transactions", transaction.id, new=transaction)
    return result


# PUBLIC_INTERFACE
@router.get("/transactions/{transaction_id}", response_model=TransactionRead, summary="Get transaction")
async def get_transaction(
    transaction_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> TransactionRead:
    return TransactionRead.model_validate(await TransactionRepository(session, owner_id).find_by_id(transaction_id))


# PUBLIC_INTERFACE
@router.put("/transactions/{transaction_id}", response_model=TransactionRead, summary="Update transaction")
async def update_transaction(
    transaction_id: UUID,
    payload: TransactionUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> TransactionRead:
    repo = TransactionRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(transaction_id))
    values = payload.model_dump(exclude_unset=True)
    await _check_transaction_refs(session, owner_id, values)
    transaction = await repo.update(transaction_id, values)
    await revalidate_resource_cache("transactions", owner_id)
    result = TransactionRead.model_validate(transaction)
    await audit.record("update", "transactions", transaction_id, old=before, new=transaction)
    return result


# PUBLIC_INTERFACE
@router.delete("/transactions/{transaction_id}", status_code=204, summary="Delete transaction")
async def delete_transaction(
    transaction_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = TransactionRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(transaction_id))
    await repo.delete(transaction_id)
    await revalidate_resource_cache("transactions", owner_id)
    await audit.record("delete", "transactions", transaction_id, old=before)
    return Response(status_code=204)


# Expenses

# PUBLIC_INTERFACE
@router.get(
    "/expenses",
    response_model=List[ExpenseRead],
    summary="List expenses",
    description="Expenses with from <= expense_date <= to, newest first.",
)
async def list_expenses(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    async def fetch():
        rows = await ExpenseRepository(session, owner_id).list_between(
            date_from, date_to, limit=limit, offset=offset
        )
        return [ExpenseRead.model_validate(r).model_dump(mode="json") for r in rows]

    return await cached("expenses", owner_id, fetch, date_from, date_to, limit, offset)


# PUBLIC_INTERFACE
@router.post("/expenses", response_model=ExpenseRead, status_code=201, summary="Create expense")
async def create_expense(
    payload: ExpenseCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> ExpenseRead:
    expense = await ExpenseRepository(session, owner_id).create(payload.model_dump())
    await revalidate_resource_cache("expenses", owner_id)
    result = ExpenseRead.model_validate(expense)
    await audit.record("create", "expenses", expense.id, new=expense)
    return result


# PUBLIC_INTERFACE
@router.get("/expenses/{expense_id}", response_model=ExpenseRead, summary="Get expense")
async def get_expense(
    expense_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> ExpenseRead:
    return ExpenseRead.model_validate(await ExpenseRepository(session, owner_id).find_by_id(expense_id))


# PUBLIC_INTERFACE
@router.put("/expenses/{expense_id}", response_model=ExpenseRead, summary="Update expense")
async def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> ExpenseRead:
    repo = ExpenseRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(expense_id))
    expense = await repo.update(expense_id, payload.model_dump(exclude_unset=True))
    await revalidate_resource_cache("expenses", owner_id)
    result = ExpenseRead.model_validate(expense)
    await audit.record("update", "expenses", expense_id, old=before, new=expense)
    return result


# PUBLIC_INTERFACE
@router.delete("/expenses/{expense_id}", status_code=204, summary="Delete expense")
async def delete_expense(
    expense_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = ExpenseRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(expense_id))
    await repo.delete(expense_id)
    await revalidate_resource_cache("expenses", owner_id)
    await audit.record("delete", "expenses", expense_id, old=before)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.get(
    "/finance/summary",
    response_model=FinanceSummary,
    summary="Finance ledger",
    description=(
        "Transactions (income) and expenses in [from, to] merged into one sorted, paginated list "
        "with income, expense and profit totals for the range."
    ),
)
async def finance_summary(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    types: str = Query(",".join(FINANCE_TYPES), description="Comma-separated: income, expense"),
    sort_key: Literal["date", "amount"] = Query("date"),
    sort_dir: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=500),
) -> FinanceSummary:
    wanted = [t.strip() for t in types.split(",") if t.strip()]
    return await FinanceService(session, owner_id).summary(
        date_from=date_from,
        date_to=date_to,
        types=wanted,
        sort_key=sort_key,
        sort_dir=sort_dir,
        page=page,
        page_size=page_size,
    )


# Budgets

# PUBLIC_INTERFACE
@router.get(
    "/finance/budget",
    response_model=BudgetOverview,
    summary="Budget status",
    description=(
        "Budgets of the month with spending from that month's expenses, percentage used and "
        "over-budget / 80% warning flags. Categories with expenses but no budget are listed after them."
    ),
)
async def get_budget_overview(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="YYYY-MM, defaults to the current month"),
) -> BudgetOverview:
    return await BudgetService(session, owner_id).overview(month or date.today().strftime("%Y-%m"))


# PUBLIC_INTERFACE
@router.put("/finance/budget", response_model=BudgetRead, summary="Set budget")
async def put_budget(
    payload: BudgetUpsert,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> BudgetRead:
    """Create the category's budget for the month or replace its amount."""
    budget = await BudgetService(session, owner_id).upsert(payload)
    result = BudgetRead.model_validate(budget)
    await audit.record("update", "budgets", budget.id, new=budget)
    return result


# PUBLIC_INTERFACE
@router.delete("/finance/budget/{budget_id}", status_code=204, summary="Delete budget")
async def delete_budget(
    budget_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = BudgetRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(budget_id))
    await repo.delete(budget_id)
    await audit.record("delete", "budgets", budget_id, old=before)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.get(
    "/finance/forecast",
    response_model=FinanceForecast,
    summary="Finance forecast",
    description=(
        "Monthly revenue and expense totals over the last `months` months, a linear projection of "
        "each for the next quarter, calendar-month seasonality and the projected profit."
    ),
)
async def finance_forecast(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    months: int = Query(12, ge=1, le=60),
) -> FinanceForecast:
    return await FinanceAnalysisService(session, owner_id).forecast(months=months)


# PUBLIC_INTERFACE
@router.get("/finance/reports", response_model=FinanceReport, summary="Finance report")
async def finance_report(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    report_type: Literal["monthly", "quarterly"] = Query("monthly", alias="type"),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    quarter: Optional[int] = Query(None, ge=1, le=4),
) -> FinanceReport:
    """Income statement for a month or quarter; omitted parts default to the current period."""
    today = date.today()
    return await FinanceAnalysisService(session, owner_id).report(
        report_type,
        year=year or today.year,
        month=month or today.month,
        quarter=quarter or (today.month - 1) // 3 + 1,
    )
