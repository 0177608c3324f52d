from __future__ import annotations

import logging
import uuid
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from salon_api.core.errors import BadRequestError, NotFoundError
from salon_api.db.models.scheduling import Appointment
from salon_api.repositories.customers import CustomerRepository
from salon_api.repositories.inventory import ProductRepository
from salon_api.repositories.scheduling import AppointmentRepository
from salon_api.repositories.staff import StaffRepository
from salon_api.schemas.scheduling import AppointmentCreate, AppointmentUpdate, RecurringAppointmentRequest
from salon_api.services.audit import snapshot
from salon_api.services.base import BaseService
from salon_api.services.staff import week_monday

logger = logging.getLogger(__name__)


def _day_offset(day: int) -> int:
    """Offset from Monday for 0=Sunday .. 6=Saturday."""
    return 6 if day == 0 else day - 1


class AppointmentService(BaseService):
    """
    Appointment booking.

    Customer, staff and service references must belong to the same owner; a
    reference to another owner's row is reported as not found.
    """

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.appointments = AppointmentRepository(session, owner_id)
        self.customers = CustomerRepository(session, owner_id)
        self.staff = StaffRepository(session, owner_id)
        self.products = ProductRepository(session, owner_id)

    async def _check_references(self, values: Mapping[str, Any]) -> None:
        if values.get("customer_id") is not None:
            await self.customers.find_by_id(values["customer_id"])
        if values.get("staff_id") is not None:
            await self.staff.find_by_id(values["staff_id"])
        if values.get("service_id") is not None:
            await self.products.find_by_id(values["service_id"])

    # PUBLIC_INTERFACE
    async def list_appointments(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        staff_id: Optional[UUID] = None,
        customer_id: Optional[UUID] = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[Appointment]:
        return await self.appointments.list_between(
            start=start,
            end=end,
            status=status,
            staff_id=staff_id,
            customer_id=customer_id,
            limit=limit,
            offset=offset,
        )

    # PUBLIC_INTERFACE
    async def create(self, payload: AppointmentCreate) -> Appointment:
        values = payload.model_dump()
        await self._check_references(values)
        return await self.appointments.create(values)

    # PUBLIC_INTERFACE
    async def update(self, appointment_id: UUID, payload: AppointmentUpdate) -> Tuple[Dict[str, Any], Appointment]:
        """Apply the provided fields; returns the prior column values and the updated row."""
        current = await self.appointments.find_by_id(appointment_id)
        before = snapshot(current)
        values = payload.model_dump(exclude_unset=True)
        await self._check_references(values)
        updated = await self.appointments.update(appointment_id, values)
        return before, updated

    # PUBLIC_INTERFACE
    async def create_recurring(self, payload: RecurringAppointmentRequest) -> Tuple[UUID, List[Appointment]]:
        """
        Book the same slot on the given weekdays for repeat_weeks weeks.

        Weeks start on the Monday of start_date's week; dates before start_date are
        skipped. All created rows share one recurring_id.

        Raises:
            BadRequestError: when no date on or after start_date results.
        """
        values = payload.model_dump()
        await self._check_references(values)

        hours, minutes = (int(p) for p in payload.start_time.split(":"))
        slot = time(hours, minutes)
        monday = week_monday(payload.start_date)
        recurring_id = uuid.uuid4()

        rows = []
        for week in range(payload.repeat_weeks):
            for day in payload.days:
                target = monday + timedelta(weeks=week, days=_day_offset(day))
                if target < payload.start_date:
                    continue
                rows.append(
                    self.appointments.build(
                        {
                            "customer_id": payload.customer_id,
                            "staff_id": payload.staff_id,
                            "service_id": payload.service_id,
                            "appointment_date": datetime.combine(target, slot),
                            "status": payload.status,
                            "total_price": payload.total_price,
                            "notes": payload.notes,
                            "recurring_id": recurring_id,
                        }
                    )
                )

        if not rows:
            raise BadRequestError("No appointments fall on or after start_date")
        rows.sort(key=lambda a: a.appointment_date)
        await self.appointments.add_all(rows)
        await self.appointments.commit()
        for row in rows:
            await self.appointments.refresh(row)
        logger.info("Created %d recurring appointments (%s)", len(rows), recurring_id)
        return recurring_id, rows

    # PUBLIC_INTERFACE
    async def delete_recurring(self, recurring_id: UUID) -> int:
        """Delete every appointment of a series; NotFound when the series has none."""
        deleted = await self.appointments.delete_recurring(recurring_id)
        if not deleted:
            raise NotFoundError("recurring series not found")
        return deleted
