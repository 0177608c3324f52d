from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from salon_api.db.models.finance import Budget, Expense, Transaction
from salon_api.db.models.scheduling import Appointment
from .base import OwnedRepository


class TransactionRepository(OwnedRepository[Transaction]):
    """Income transactions."""

    model = Transaction
    search_fields = ("notes", "category", "payment_method")
    default_order_by = "transaction_date"
    default_ascending = False

    def _between(self, stmt, date_from: Optional[date], date_to: Optional[date]):
        if date_from is not None:
            stmt = stmt.where(Transaction.transaction_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Transaction.transaction_date <= date_to)
        return stmt

    async def list_between(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> List[Transaction]:
        """All transactions with date_from <= transaction_date <= date_to."""
        stmt = self._between(self.scoped(), date_from, date_to).order_by(Transaction.transaction_date.desc())
        res = await self.scalars(stmt)
        return list(res)

    async def list_for_customer(self, customer_id: UUID) -> List[Transaction]:
        stmt = self.scoped().where(Transaction.customer_id == customer_id).order_by(Transaction.transaction_date.asc())
        res = await self.scalars(stmt)
        return list(res)

    async def sum_for_staff(self, staff_id: UUID, start: datetime, end: datetime) -> float:
        """Revenue from transactions linked to the staff member's appointments in [start, end)."""
        stmt = (
            select(func.coalesce(func.sum(Transaction.amount), 0))
            .join(Appointment, Appointment.id == Transaction.appointment_id)
            .where(
                Transaction.owner_id == self.owner_id,
                Appointment.owner_id == self.owner_id,
                Appointment.staff_id == staff_id,
                Appointment.appointment_date >= start,
                Appointment.appointment_date < end,
            )
        )
        return float(await self.scalar(stmt) or 0)

    async def list_linked_since(
        self, since: datetime, staff_id: Optional[UUID] = None
    ) -> List[Tuple[Transaction, Optional[UUID], Optional[UUID]]]:
        """
        Transactions dated on or after `since` whose appointment also starts on or
        after it, each with that appointment's staff_id and service_id.
        """
        stmt = (
            select(Transaction, Appointment.staff_id, Appointment.service_id)
            .join(Appointment, Appointment.id == Transaction.appointment_id)
            .where(
                Transaction.owner_id == self.owner_id,
                Appointment.owner_id == self.owner_id,
                Transaction.transaction_date >= since.date(),
                Appointment.appointment_date >= since,
            )
            .order_by(Transaction.transaction_date.asc())
        )
        if staff_id is not None:
            stmt = stmt.where(Appointment.staff_id == staff_id)
        res = await self.execute(stmt)
        return [(row[0], row[1], row[2]) for row in res.all()]


class ExpenseRepository(OwnedRepository[Expense]):
    """Business expenses."""

    model = Expense
    search_fields = ("category", "memo")
    default_order_by = "expense_date"
    default_ascending = False

    async def list_between(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Expense]:
        """Expenses with date_from <= expense_date <= date_to, newest first."""
        stmt = self.scoped()
        if date_from is not None:
            stmt = stmt.where(Expense.expense_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Expense.expense_date <= date_to)
        stmt = stmt.order_by(Expense.expense_date.desc(), Expense.created_at.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        res = await self.scalars(stmt)
        return list(res)


class BudgetRepository(OwnedRepository[Budget]):
    """Monthly category budgets."""

    model = Budget
    search_fields = ("category",)
    default_order_by = "category"
    default_ascending = True

    async def list_for_month(self, month: str) -> List[Budget]:
        stmt = self.scoped().where(Budget.month == month).order_by(Budget.category.asc())
        res = await self.scalars(stmt)
        return list(res)

    async def get_for_category(self, category: str, month: str) -> Optional[Budget]:
        stmt = self.scoped().where(Budget.category == category, Budget.month == month)
        return await self.scalar_one_or_none(stmt)
