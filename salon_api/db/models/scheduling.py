from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from salon_api.db.base import Base, Money, OwnerMixin, TimestampMixin, UUIDPkMixin


class Appointment(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Booked visit of a customer with a staff member for a service (product)."""
    __tablename__ = "appointments"

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True, index=True
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    appointment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="scheduled", server_default="scheduled")
    total_price: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recurring_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
