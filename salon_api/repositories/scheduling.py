from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select

from salon_api.db.models.scheduling import Appointment
from .base import OwnedRepository


class AppointmentRepository(OwnedRepository[Appointment]):
    """Owner-scoped access to appointments."""

    model = Appointment
    search_fields = ("notes",)
    default_order_by = "appointment_date"
    default_ascending = True
    default_limit = 200

    def _window(self, stmt, start: Optional[datetime], end: Optional[datetime]):
        if start is not None:
            stmt = stmt.where(Appointment.appointment_date >= start)
        if end is not None:
            stmt = stmt.where(Appointment.appointment_date < end)
        return stmt

    async def list_between(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        staff_id: Optional[UUID] = None,
        customer_id: Optional[UUID] = None,
        limit: int = 200,
        offset: int = 0,
        ascending: bool = True,
    ) -> List[Appointment]:
        """Appointments in [start, end) ordered by date."""
        stmt = self._window(self.scoped(), start, end)
        stmt = self._apply_filters(stmt, {"status": status, "staff_id": staff_id, "customer_id": customer_id})
        order = Appointment.appointment_date.asc() if ascending else Appointment.appointment_date.desc()
        stmt = stmt.order_by(order).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def count_between(self, start: Optional[datetime], end: Optional[datetime]) -> int:
        stmt = self._window(
            select(func.count(Appointment.id)).where(Appointment.owner_id == self.owner_id), start, end
        )
        return int(await self.scalar(stmt) or 0)

    async def list_for_customer(self, customer_id: UUID) -> List[Appointment]:
        stmt = self.scoped().where(Appointment.customer_id == customer_id).order_by(Appointment.appointment_date.asc())
        res = await self.scalars(stmt)
        return list(res)

    async def delete_recurring(self, recurring_id: UUID) -> int:
        stmt = delete(Appointment).where(
            Appointment.owner_id == self.owner_id, Appointment.recurring_id == recurring_id
        )
        result = await self.execute(stmt)
        await self.commit()
        return int(result.rowcount or 0)
