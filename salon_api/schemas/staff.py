from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .common import blank_to_none

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
PayrollStatus = Literal["draft", "confirmed", "paid"]


class StaffCreate(BaseModel):
    """Create staff payload."""
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    notes: Optional[str] = None
    active: bool = True
    incentive_rate: float = Field(0.0, ge=0, le=100, description="Share of sales paid as incentive, in percent")

    @field_validator("phone", "email", "role", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return blank_to_none(v)


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    notes: Optional[str] = None
    active: Optional[bool] = None
    incentive_rate: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("phone", "email", "role", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return blank_to_none(v)


class StaffRead(BaseModel):
    id: UUID
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    notes: Optional[str] = None
    active: bool
    incentive_rate: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StaffSummary(BaseModel):
    id: UUID
    name: str
    role: Optional[str] = None

    class Config:
        from_attributes = True


# Attendance

class AttendanceCreate(BaseModel):
    staff_id: UUID
    type: Literal["scheduled", "actual"] = "scheduled"
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str = "normal"
    memo: Optional[str] = None

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class AttendanceUpdate(BaseModel):
    type: Optional[Literal["scheduled", "actual"]] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[str] = None
    memo: Optional[str] = None


class AttendanceRead(BaseModel):
    id: UUID
    staff_id: UUID
    type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str
    memo: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ScheduleDay(BaseModel):
    """Weekly template entry."""
    day_of_week: Weekday
    is_holiday: bool = False
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _lower(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _times_required(self):
        if self.is_holiday:
            return self
        if not self.start_time or not self.end_time:
            raise ValueError("start_time and end_time are required for working days")
        for value in (self.start_time, self.end_time):
            if not _TIME_RE.match(value):
                raise ValueError(f"invalid time '{value}', expected HH:MM")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleBatchRequest(BaseModel):
    staff_id: UUID
    start_date: date
    repeat_weeks: int = Field(1, ge=1, le=12)
    schedule: List[ScheduleDay] = Field(..., min_length=1)


class ScheduleBatchResult(BaseModel):
    success: bool = True
    count: int
    replaced: int = Field(0, description="Existing scheduled records removed in the range")


# Payroll

class PayrollSettingsUpdate(BaseModel):
    base_salary: float = Field(0, ge=0)
    hourly_rate: float = Field(0, ge=0)
    national_pension_rate: float = Field(4.5, ge=0, le=100)
    health_insurance_rate: float = Field(3.545, ge=0, le=100)
    employment_insurance_rate: float = Field(0.9, ge=0, le=100)
    income_tax_rate: float = Field(3.3, ge=0, le=100)


class PayrollSettingsRead(PayrollSettingsUpdate):
    staff_id: UUID
    id: Optional[UUID] = Field(None, description="None when defaults are returned")

    class Config:
        from_attributes = True


class PayrollRecordBase(BaseModel):
    base_salary: float = 0
    overtime_pay: float = 0
    incentive_pay: float = 0
    total_gross: float = 0
    national_pension: float = 0
    health_insurance: float = 0
    employment_insurance: float = 0
    income_tax: float = 0
    total_deductions: float = 0
    net_salary: float = 0
    status: PayrollStatus = "draft"
    memo: Optional[str] = None


class PayrollRecordCreate(PayrollRecordBase):
    staff_id: UUID
    month: str = Field(..., pattern=MONTH_PATTERN, description="YYYY-MM")


class PayrollRecordRead(PayrollRecordBase):
    id: UUID
    staff_id: UUID
    month: str
    staff: Optional[StaffSummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PayrollCalculateRequest(BaseModel):
    staff_id: UUID
    month: str = Field(..., pattern=MONTH_PATTERN, description="YYYY-MM")


class PayrollCalculationDetails(BaseModel):
    work_hours: int
    hourly_rate: float
    base_salary: float
    hourly_pay: float
    overtime_hours: int
    overtime_pay: float
    sales: float
    incentive_rate: float
    incentive_pay: float


class PayrollCalculationResult(BaseModel):
    success: bool = True
    payroll_record: PayrollRecordRead
    calculation_details: PayrollCalculationDetails


class PayrollSummaryRow(BaseModel):
    staff_id: UUID
    staff_name: str
    role: Optional[str] = None
    status: str = Field(..., description="Record status or 'not_calculated'")
    total_gross: float = 0
    net_salary: float = 0
    record_id: Optional[UUID] = None


class PayrollSummary(BaseModel):
    month: str
    rows: List[PayrollSummaryRow]
    total_gross_pay: float
    total_net_pay: float
    total_pages: int
    page: int


# Performance

class StaffPerformanceStaff(StaffSummary):
    incentive_rate: float = 0


class StaffPerformanceMetrics(BaseModel):
    appointment_count: int
    completed_count: int
    total_revenue: float
    avg_revenue: float = Field(..., description="Revenue per completed appointment")
    total_work_hours: float = Field(..., description="Hours of actual attendance, one decimal")
    revenue_per_hour: float
    incentive_pay: float = Field(..., description="Revenue times the incentive rate")
    avg_appointments_per_month: float
    avg_revenue_per_month: float


class StaffMonthlyTrend(BaseModel):
    month: str
    appointments: int = 0
    revenue: float = 0


class StaffPerformance(BaseModel):
    """Appointments, linked revenue and worked hours of one staff member over recent months."""
    staff: StaffPerformanceStaff
    performance: StaffPerformanceMetrics
    monthly_trends: List[StaffMonthlyTrend]
    months: int
