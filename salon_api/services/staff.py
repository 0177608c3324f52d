from __future__ import annotations

import calendar
import logging
import math
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from salon_api.core.errors import BadRequestError
from salon_api.db.models.staff import PayrollRecord, PayrollSettings, Staff
from salon_api.repositories.finance import TransactionRepository
from salon_api.repositories.scheduling import AppointmentRepository
from salon_api.repositories.staff import (
    AttendanceRepository,
    PayrollRecordRepository,
    PayrollSettingsRepository,
    StaffRepository,
)
from salon_api.schemas.staff import (
    PayrollCalculationDetails,
    PayrollRecordCreate,
    PayrollRecordRead,
    PayrollSettingsRead,
    PayrollSettingsUpdate,
    PayrollSummary,
    PayrollSummaryRow,
    ScheduleBatchRequest,
    StaffMonthlyTrend,
    StaffPerformance,
    StaffPerformanceMetrics,
    StaffPerformanceStaff,
    StaffSummary,
)
from salon_api.services.base import BaseService

logger = logging.getLogger(__name__)

WEEKDAY_OFFSET = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

STANDARD_MONTHLY_HOURS = 160
OVERTIME_MULTIPLIER = 1.5


def week_monday(day: date) -> date:
    return day - timedelta(days=day.weekday())


def month_bounds(month: str) -> Tuple[datetime, datetime]:
    """Return [first instant of month, first instant of next month) for 'YYYY-MM'."""
    year, mon = (int(p) for p in month.split("-"))
    start = datetime(year, mon, 1)
    end = datetime(year + 1, 1, 1) if mon == 12 else datetime(year, mon + 1, 1)
    return start, end


def months_ago(today: date, months: int) -> date:
    """Same day of the month `months` months earlier, clamped to the last day of a shorter month."""
    index = today.year * 12 + today.month - 1 - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(today.day, calendar.monthrange(year, month)[1]))


def recent_month_keys(today: date, months: int) -> List[str]:
    """'YYYY-MM' keys of the last `months` months up to and including today's, oldest first."""
    index = today.year * 12 + today.month - 1
    keys = []
    for back in range(months - 1, -1, -1):
        year, month = divmod(index - back, 12)
        keys.append(f"{year:04d}-{month + 1:02d}")
    return keys


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


class ScheduleService(BaseService):
    """Weekly schedule templates expanded into attendance records."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.staff = StaffRepository(session, owner_id)
        self.attendance = AttendanceRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def create_batch(self, payload: ScheduleBatchRequest) -> Tuple[int, int]:
        """
        Expand a weekly template over repeat_weeks weeks starting at the Monday of
        start_date's week. Existing 'scheduled' records of the staff member in the
        covered weeks are replaced.

        Returns:
            (created, replaced)
        """
        await self.staff.find_by_id(payload.staff_id)
        monday = week_monday(payload.start_date)

        records = []
        for week in range(payload.repeat_weeks):
            week_start = monday + timedelta(weeks=week)
            for day in payload.schedule:
                if day.is_holiday:
                    continue
                target = week_start + timedelta(days=WEEKDAY_OFFSET[day.day_of_week])
                records.append(
                    self.attendance.build(
                        {
                            "staff_id": payload.staff_id,
                            "type": "scheduled",
                            "start_time": datetime.combine(target, _parse_hhmm(day.start_time)),
                            "end_time": datetime.combine(target, _parse_hhmm(day.end_time)),
                            "status": "normal",
                        }
                    )
                )

        replaced = 0
        if records:
            range_start = datetime.combine(monday, time.min)
            range_end = datetime.combine(monday + timedelta(weeks=payload.repeat_weeks), time.min)
            replaced = await self.attendance.delete_scheduled_between(payload.staff_id, range_start, range_end)
            await self.attendance.add_all(records)
            await self.attendance.commit()
        logger.info("Created %d scheduled records for staff %s (replaced %d)", len(records), payload.staff_id, replaced)
        return len(records), replaced


class PayrollService(BaseService):
    """Payroll settings, monthly records, calculation and the monthly overview."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.staff = StaffRepository(session, owner_id)
        self.attendance = AttendanceRepository(session, owner_id)
        self.settings = PayrollSettingsRepository(session, owner_id)
        self.records = PayrollRecordRepository(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def get_settings(self, staff_id: UUID) -> PayrollSettingsRead:
        """Stored settings for the staff member, or the default rates when none exist."""
        await self.staff.find_by_id(staff_id)
        row = await self.settings.get_for_staff(staff_id)
        if row is None:
            return PayrollSettingsRead(staff_id=staff_id)
        return PayrollSettingsRead.model_validate(row)

    # PUBLIC_INTERFACE
    async def upsert_settings(self, staff_id: UUID, payload: PayrollSettingsUpdate) -> PayrollSettings:
        await self.staff.find_by_id(staff_id)
        row = await self.settings.get_for_staff(staff_id)
        values = payload.model_dump()
        if row is None:
            return await self.settings.create({"staff_id": staff_id, **values})
        return await self.settings.update(row.id, values)

    # PUBLIC_INTERFACE
    async def upsert_record(self, payload: PayrollRecordCreate) -> PayrollRecord:
        """Insert or replace the record for (staff_id, month)."""
        await self.staff.find_by_id(payload.staff_id)
        existing = await self.records.get_for_month(payload.staff_id, payload.month)
        values = payload.model_dump()
        if existing is None:
            return await self.records.create(values)
        return await self.records.update(existing.id, values)

    async def create_record(self, payload: PayrollRecordCreate) -> PayrollRecord:
        await self.staff.find_by_id(payload.staff_id)
        return await self.records.create(payload.model_dump())

    # PUBLIC_INTERFACE
    async def list_records(self, staff_id: Optional[UUID] = None, month: Optional[str] = None) -> List[PayrollRecordRead]:
        """Records by staff (latest 12 months) or by month, each with a staff summary."""
        limit = 12 if staff_id is not None and not month else 1000
        rows = await self.records.list_records(staff_id=staff_id, month=month, limit=limit)
        result = []
        for record, staff in rows:
            item = PayrollRecordRead.model_validate(record)
            if staff is not None:
                item.staff = StaffSummary.model_validate(staff)
            result.append(item)
        return result

    async def _work_hours(self, staff_id: UUID, start: datetime, end: datetime) -> int:
        entries = await self.attendance.list_attendance(staff_id=staff_id, start=start, end=end, limit=10000)
        hours = 0
        for entry in entries:
            if entry.start_time is None or entry.end_time is None:
                continue
            seconds = (entry.end_time - entry.start_time).total_seconds()
            if seconds > 0:
                hours += int(seconds // 3600)
        return hours

    # PUBLIC_INTERFACE
    async def calculate(self, staff_id: UUID, month: str) -> Tuple[PayrollRecord, PayrollCalculationDetails]:
        """
        Calculate and store the payroll record for a staff member and month.

        hours: whole hours of every attendance record starting inside the month
        hourly pay: hours * hourly_rate, only when base_salary is 0
        overtime: max(0, hours - 160) * hourly_rate * 1.5
        incentive: month sales * incentive_rate / 100
        deductions: gross * rate / 100 for pension, health, employment insurance and income tax
        """
        staff: Staff = await self.staff.find_by_id(staff_id)
        start, end = month_bounds(month)
        settings = await self.get_settings(staff_id)

        hours = await self._work_hours(staff_id, start, end)
        base_salary = float(settings.base_salary or 0)
        hourly_rate = float(settings.hourly_rate or 0)
        hourly_pay = hours * hourly_rate if base_salary == 0 else 0.0
        overtime_hours = max(0, hours - STANDARD_MONTHLY_HOURS)
        overtime_pay = overtime_hours * hourly_rate * OVERTIME_MULTIPLIER

        sales = await self.transactions.sum_for_staff(staff_id, start, end)
        incentive_rate = float(staff.incentive_rate or 0)
        incentive_pay = sales * incentive_rate / 100

        gross = base_salary + hourly_pay + overtime_pay + incentive_pay
        pension = round(gross * settings.national_pension_rate / 100, 2)
        health = round(gross * settings.health_insurance_rate / 100, 2)
        employment = round(gross * settings.employment_insurance_rate / 100, 2)
        income_tax = round(gross * settings.income_tax_rate / 100, 2)
        deductions = pension + health + employment + income_tax

        record = await self.upsert_record(
            PayrollRecordCreate(
                staff_id=staff_id,
                month=month,
                base_salary=round(base_salary + hourly_pay, 2),
                overtime_pay=round(overtime_pay, 2),
                incentive_pay=round(incentive_pay, 2),
                total_gross=round(gross, 2),
                national_pension=pension,
                health_insurance=health,
                employment_insurance=employment,
                income_tax=income_tax,
                total_deductions=round(deductions, 2),
                net_salary=round(gross - deductions, 2),
                status="draft",
                memo=f"auto-calculated (hours: {hours}h)",
            )
        )
        details = PayrollCalculationDetails(
            work_hours=hours,
            hourly_rate=hourly_rate,
            base_salary=base_salary,
            hourly_pay=hourly_pay,
            overtime_hours=overtime_hours,
            overtime_pay=overtime_pay,
            sales=sales,
            incentive_rate=incentive_rate,
            incentive_pay=incentive_pay,
        )
        logger.info("Payroll calculated for staff %s month %s: gross %.2f", staff_id, month, gross)
        return record, details

    # PUBLIC_INTERFACE
    async def summary(
        self,
        month: str,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        sort_key: str = "staff_name",
        sort_dir: str = "asc",
        page: int = 1,
        page_size: int = 20,
    ) -> PayrollSummary:
        """
        Staff overview for a month: filter by name and record status
        ('not_calculated' when no record exists), sort, paginate. Totals cover every
        record of the month regardless of filters.
        """
        staff_rows = await self.staff.find_all(limit=10000, order_by="name", ascending=True)
        records = {r.staff_id: r for r, _ in await self.records.list_records(month=month, limit=10000)}

        rows: List[PayrollSummaryRow] = []
        for s in staff_rows:
            record = records.get(s.id)
            row = PayrollSummaryRow(
                staff_id=s.id,
                staff_name=s.name,
                role=s.role,
                status=record.status if record else "not_calculated",
                total_gross=record.total_gross if record else 0,
                net_salary=record.net_salary if record else 0,
                record_id=record.id if record else None,
            )
            if search and search.strip().lower() not in s.name.lower():
                continue
            if status and status != "all" and row.status != status:
                continue
            rows.append(row)

        if sort_key not in PayrollSummaryRow.model_fields:
            raise BadRequestError(f"Unknown sort key '{sort_key}'")
        rows.sort(
            key=lambda r: (getattr(r, sort_key) is None, getattr(r, sort_key) if getattr(r, sort_key) is not None else 0),
            reverse=sort_dir == "desc",
        )

        total_pages = max(1, math.ceil(len(rows) / page_size))
        start = (page - 1) * page_size
        return PayrollSummary(
            month=month,
            rows=rows[start:start + page_size],
            total_gross_pay=round(sum(r.total_gross for r in records.values()), 2),
            total_net_pay=round(sum(r.net_salary for r in records.values()), 2),
            total_pages=total_pages,
            page=page,
        )


class StaffPerformanceService(BaseService):
    """Per-staff productivity over a trailing window of months."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.staff = StaffRepository(session, owner_id)
        self.attendance = AttendanceRepository(session, owner_id)
        self.appointments = AppointmentRepository(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def performance(self, staff_id: UUID, months: int = 3, today: Optional[date] = None) -> StaffPerformance:
        """
        Appointments, revenue and hours of a staff member since the same day `months` months ago.

        Revenue counts transactions linked to the member's appointments in the window;
        hours come from 'actual' attendance starting in the window.
        """
        staff: Staff = await self.staff.find_by_id(staff_id)
        today = today or date.today()
        since = datetime.combine(months_ago(today, months), time.min)

        appointments = await self.appointments.list_between(start=since, staff_id=staff_id, limit=100000)
        linked = await self.transactions.list_linked_since(since, staff_id=staff_id)
        worked = await self.attendance.list_attendance(staff_id=staff_id, start=since, type_="actual", limit=100000)

        completed = sum(1 for a in appointments if a.status == "complete")
        revenue = float(sum(t.amount or 0 for t, _, _ in linked))
        hours = 0.0
        for entry in worked:
            if entry.end_time is None:
                continue
            seconds = (entry.end_time - entry.start_time).total_seconds()
            if seconds > 0:
                hours += seconds / 3600
        incentive_rate = float(staff.incentive_rate or 0)

        trends = {key: StaffMonthlyTrend(month=key) for key in recent_month_keys(today, months)}
        for a in appointments:
            trend = trends.get(a.appointment_date.strftime("%Y-%m"))
            if trend is not None:
                trend.appointments += 1
        for t, _, _ in linked:
            trend = trends.get(t.transaction_date.strftime("%Y-%m"))
            if trend is not None:
                trend.revenue += float(t.amount or 0)

        return StaffPerformance(
            staff=StaffPerformanceStaff(id=staff.id, name=staff.name, role=staff.role, incentive_rate=incentive_rate),
            performance=StaffPerformanceMetrics(
                appointment_count=len(appointments),
                completed_count=completed,
                total_revenue=revenue,
                avg_revenue=revenue / completed if completed else 0.0,
                total_work_hours=round(hours, 1),
                revenue_per_hour=round(revenue / hours) if hours else 0,
                incentive_pay=round(revenue * incentive_rate / 100),
                avg_appointments_per_month=round(len(appointments) / months, 1),
                avg_revenue_per_month=round(revenue / months),
            ),
            monthly_trends=list(trends.values()),
            months=months,
        )
