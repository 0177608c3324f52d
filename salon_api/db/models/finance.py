from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from salon_api.db.base import Base, Money, OwnerMixin, TimestampMixin, UUIDPkMixin


class Transaction(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Income entry, optionally tied to an appointment and customer."""
    __tablename__ = "transactions"

    appointment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True, index=True
    )
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Expense(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Business expense."""
    __tablename__ = "expenses"

    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    memo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Budget(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Planned spending for one expense category in one month."""
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("owner_id", "category", "month", name="uq_budgets_owner_category_month"),
    )

    category: Mapped[str] = mapped_column(Text, nullable=False)
    month: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    budget_amount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
