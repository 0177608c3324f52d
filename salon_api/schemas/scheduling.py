from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import blank_to_none

AppointmentStatus = Literal["scheduled", "pending", "cancelled", "complete"]
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class AppointmentCreate(BaseModel):
    """Book an appointment."""
    customer_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    service_id: Optional[UUID] = Field(None, description="Product booked as the service")
    appointment_date: datetime
    status: AppointmentStatus = "scheduled"
    total_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _blank_notes(cls, v):
        return blank_to_none(v)


class AppointmentUpdate(BaseModel):
    customer_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    appointment_date: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    total_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class AppointmentRead(BaseModel):
    id: UUID
    customer_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    appointment_date: datetime
    status: str
    total_price: Optional[float] = None
    notes: Optional[str] = None
    recurring_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RecurringAppointmentRequest(BaseModel):
    """
    Weekly recurring booking. days uses 0=Sunday .. 6=Saturday; weeks start on
    the Monday of start_date's week and only dates on or after start_date are booked.
    """
    customer_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    start_date: date
    start_time: str = Field(..., description="HH:MM")
    repeat_weeks: int = Field(1, ge=1, le=12)
    days: List[int] = Field(..., min_length=1)
    status: AppointmentStatus = "scheduled"
    total_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError("start_time must be HH:MM")
        return v

    @field_validator("days")
    @classmethod
    def _check_days(cls, v: List[int]) -> List[int]:
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))


class RecurringAppointmentResult(BaseModel):
    recurring_id: UUID
    count: int
    appointments: List[AppointmentRead]
