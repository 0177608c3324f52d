from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select

from salon_api.db.models.staff import PayrollRecord, PayrollSettings, Staff, StaffAttendance
from .base import OwnedRepository


class StaffRepository(OwnedRepository[Staff]):
    """Owner-scoped access to staff members."""

    model = Staff
    search_fields = ("name", "email", "phone", "role")


class AttendanceRepository(OwnedRepository[StaffAttendance]):
    """Scheduled and actual working periods."""

    model = StaffAttendance
    default_order_by = "start_time"
    default_ascending = True
    default_limit = 500

    async def list_attendance(
        self,
        *,
        staff_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        type_: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> List[StaffAttendance]:
        """Records whose start_time falls in [start, end), ordered by start_time."""
        stmt = self.scoped()
        if staff_id is not None:
            stmt = stmt.where(StaffAttendance.staff_id == staff_id)
        if type_:
            stmt = stmt.where(StaffAttendance.type == type_)
        if start is not None:
            stmt = stmt.where(StaffAttendance.start_time >= start)
        if end is not None:
            stmt = stmt.where(StaffAttendance.start_time < end)
        stmt = stmt.order_by(StaffAttendance.start_time.asc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def delete_scheduled_between(self, staff_id: UUID, start: datetime, end: datetime) -> int:
        """Remove 'scheduled' records of a staff member starting in [start, end). Not committed."""
        stmt = delete(StaffAttendance).where(
            StaffAttendance.owner_id == self.owner_id,
            StaffAttendance.staff_id == staff_id,
            StaffAttendance.type == "scheduled",
            StaffAttendance.start_time >= start,
            StaffAttendance.start_time < end,
        )
        result = await self.execute(stmt)
        return int(result.rowcount or 0)


class PayrollSettingsRepository(OwnedRepository[PayrollSettings]):
    """Salary basis and deduction rates per staff member."""

    model = PayrollSettings

    async def get_for_staff(self, staff_id: UUID) -> Optional[PayrollSettings]:
        return await self.scalar_one_or_none(self.scoped().where(PayrollSettings.staff_id == staff_id))


class PayrollRecordRepository(OwnedRepository[PayrollRecord]):
    """Monthly payroll statements."""

    model = PayrollRecord
    default_order_by = "month"
    default_ascending = False

    async def get_for_month(self, staff_id: UUID, month: str) -> Optional[PayrollRecord]:
        stmt = self.scoped().where(PayrollRecord.staff_id == staff_id, PayrollRecord.month == month)
        return await self.scalar_one_or_none(stmt)

    async def list_records(
        self, *, staff_id: Optional[UUID] = None, month: Optional[str] = None, limit: int = 100
    ) -> List[Tuple[PayrollRecord, Optional[Staff]]]:
        """Records with their staff member; by staff the latest months come first."""
        stmt = (
            select(PayrollRecord, Staff)
            .outerjoin(Staff, Staff.id == PayrollRecord.staff_id)
            .where(PayrollRecord.owner_id == self.owner_id)
        )
        if staff_id is not None:
            stmt = stmt.where(PayrollRecord.staff_id == staff_id)
        if month:
            stmt = stmt.where(PayrollRecord.month == month)
        stmt = stmt.order_by(PayrollRecord.month.desc(), Staff.name.asc()).limit(limit)
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]
