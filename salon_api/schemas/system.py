from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .finance import FinanceRow


class SettingsDocument(BaseModel):
    """Full settings document returned to clients."""
    business_profile: Dict[str, Any] = Field(default_factory=dict)
    booking_settings: Dict[str, Any] = Field(default_factory=dict)
    financial_settings: Dict[str, Any] = Field(default_factory=dict)
    staff_settings: Dict[str, Any] = Field(default_factory=dict)
    system_settings: Dict[str, Any] = Field(default_factory=dict)


class SettingsUpdate(BaseModel):
    """Sections to merge; each provided section is shallow-merged over the stored one."""
    business_profile: Optional[Dict[str, Any]] = None
    booking_settings: Optional[Dict[str, Any]] = None
    financial_settings: Optional[Dict[str, Any]] = None
    staff_settings: Optional[Dict[str, Any]] = None
    system_settings: Optional[Dict[str, Any]] = None


class AuditLogRead(BaseModel):
    id: UUID
    user_id: UUID
    action_type: str
    resource_type: str
    resource_id: Optional[str] = None
    old_data: Optional[Any] = None
    new_data: Optional[Any] = None
    description: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RecentAppointment(BaseModel):
    id: UUID
    appointment_date: datetime
    status: str
    customer_name: str
    service_name: str


class DashboardSummary(BaseModel):
    """Headline numbers for the current day and month."""
    month: str
    today_appointments: int
    monthly_appointments: int
    monthly_new_customers: int
    monthly_income: float
    monthly_expense: float
    monthly_profit: float
    active_products: int
    open_inventory_alerts: int
    recent_appointments: List[RecentAppointment]
    recent_transactions: List[FinanceRow]
