from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from salon_api.db.base import Base, Money, OwnerMixin, TimestampMixin, UUIDPkMixin


class Staff(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Salon staff member."""
    __tablename__ = "staff"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    incentive_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")


class StaffAttendance(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Scheduled or actual working period for a staff member."""
    __tablename__ = "staff_attendance"

    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False, default="scheduled")
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="normal")
    memo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PayrollSettings(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Per-staff salary basis and deduction rates (percent)."""
    __tablename__ = "payroll_settings"
    __table_args__ = (
        UniqueConstraint("owner_id", "staff_id", name="uq_payroll_settings_owner_staff"),
    )

    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    base_salary: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    hourly_rate: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    national_pension_rate: Mapped[float] = mapped_column(Float, nullable=False, default=4.5)
    health_insurance_rate: Mapped[float] = mapped_column(Float, nullable=False, default=3.545)
    employment_insurance_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.9)
    income_tax_rate: Mapped[float] = mapped_column(Float, nullable=False, default=3.3)


class PayrollRecord(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Monthly payroll statement for a staff member."""
    __tablename__ = "payroll_records"
    __table_args__ = (
        UniqueConstraint("owner_id", "staff_id", "month", name="uq_payroll_records_owner_staff_month"),
    )

    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True
    )
    month: Mapped[str] = mapped_column(Text, nullable=False)
    base_salary: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    overtime_pay: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    incentive_pay: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_gross: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    national_pension: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    health_insurance: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    employment_insurance: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    income_tax: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_deductions: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    net_salary: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    memo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
