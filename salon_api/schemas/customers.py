from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import blank_to_none


class CustomerBase(BaseModel):
    """Shared customer fields."""
    phone: Optional[str] = Field(None, description="Phone number")
    email: Optional[EmailStr] = Field(None, description="Email address")
    address: Optional[str] = Field(None, description="Postal address")
    features: Optional[str] = Field(None, description="Notes on preferences, skin/hair type, etc.")

    @field_validator("phone", "email", "address", "features", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return blank_to_none(v)


class CustomerCreate(CustomerBase):
    """Create customer payload."""
    name: str = Field(..., min_length=1, description="Customer name")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class CustomerUpdate(CustomerBase):
    """Partial update payload; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, description="Customer name")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class CustomerRead(BaseModel):
    """Customer read model."""
    id: UUID = Field(..., description="Customer ID")
    name: str = Field(..., description="Customer name")
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    features: Optional[str] = Field(None)
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    class Config:
        from_attributes = True


class CustomerLtv(BaseModel):
    total_revenue: float = Field(0.0, description="Sum of all transaction amounts")
    avg_revenue: float = Field(0.0, description="Average transaction amount")
    transaction_count: int = Field(0)


class CustomerVisits(BaseModel):
    total_visits: int = Field(0, description="Completed appointments")
    total_appointments: int = Field(0)
    scheduled: int = Field(0)
    cancelled: int = Field(0)
    return_rate: float = Field(0.0, description="Completed / total appointments, in percent")


class CustomerTimeline(BaseModel):
    first_visit: Optional[datetime] = Field(None)
    last_visit: Optional[datetime] = Field(None)
    last_transaction: Optional[date] = Field(None)


class CustomerStats(BaseModel):
    """Lifetime value, visit counts and revenue timeline for one customer."""
    customer: CustomerRead
    ltv: CustomerLtv
    visits: CustomerVisits
    timeline: CustomerTimeline
    monthly_revenue: Dict[str, float] = Field(default_factory=dict, description="Revenue keyed by YYYY-MM")


TimelineEventType = Literal["appointment", "transaction", "points", "holding", "holding_change"]


class TimelineEvent(BaseModel):
    id: str = Field(..., description="<type>-<source row id>")
    type: TimelineEventType
    occurred_at: datetime
    title: str
    description: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class CustomerEvents(BaseModel):
    """Appointments, payments, point movements and holdings of one customer, newest first."""
    events: List[TimelineEvent]
    total: int = Field(..., description="Events available before the limit was applied")


# Points

class PointsEntryCreate(BaseModel):
    """Add or deduct loyalty points."""
    delta: int = Field(..., description="Signed change; must not be zero")
    reason: Optional[str] = Field(None, description="Why the points changed")

    @field_validator("delta")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must not be zero")
        return v

    @field_validator("reason", mode="before")
    @classmethod
    def _blank_reason(cls, v):
        return blank_to_none(v)


class PointsLedgerRead(BaseModel):
    id: UUID
    customer_id: UUID
    delta: int
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PointsBalance(BaseModel):
    """Current balance (all time) and optionally a page of the ledger."""
    balance: int = Field(..., description="Sum of every ledger delta")
    ledger: Optional[List[PointsLedgerRead]] = Field(None, description="Ledger entries, newest first")


class PointsReasonSum(BaseModel):
    reason: str
    sum: int = Field(..., description="Sum of absolute deltas for this reason")
    count: int


class PointsReport(BaseModel):
    total_add: int
    total_deduct: int
    net: int
    by_reason: List[PointsReasonSum] = Field(default_factory=list)


# Holdings

class HoldingCreate(BaseModel):
    """Register a product kept for a customer."""
    product_id: UUID = Field(..., description="Held product")
    quantity: int = Field(1, gt=0, description="Quantity held")
    notes: Optional[str] = Field(None)

    @field_validator("notes", mode="before")
    @classmethod
    def _blank_notes(cls, v):
        return blank_to_none(v)


class HoldingUpdate(BaseModel):
    """Change a holding; a ledger entry records quantity changes unless no_ledger is set."""
    quantity: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None)
    reason: Optional[str] = Field(None, description="Ledger reason (default 'update')")
    no_ledger: bool = Field(False, description="Skip writing a ledger entry")


class HoldingRead(BaseModel):
    id: UUID
    customer_id: UUID
    product_id: UUID
    product_name: Optional[str] = None
    quantity: int
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class HoldingLedgerCreate(BaseModel):
    """Manual ledger entry; the holding quantity moves by delta."""
    delta: int = Field(..., description="Signed quantity change; must not be zero")
    reason: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)

    @field_validator("delta")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must not be zero")
        return v


class HoldingLedgerRead(BaseModel):
    id: UUID
    customer_product_id: UUID
    product_name: Optional[str] = None
    delta: int
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# Vouchers

class VoucherCreate(BaseModel):
    """Issue a prepaid voucher to a customer."""
    name: str = Field(..., min_length=1)
    total_amount: float = Field(..., gt=0)
    expires_at: Optional[date] = Field(None, description="Last valid day")


class VoucherRead(BaseModel):
    id: UUID
    customer_id: UUID
    name: str
    total_amount: float
    remaining_amount: float
    expires_at: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VoucherUseCreate(BaseModel):
    """Redeem part of a voucher balance."""
    amount: float = Field(..., gt=0)
    transaction_id: Optional[UUID] = Field(None, description="Transaction paid with the voucher")


class VoucherUseRead(BaseModel):
    id: UUID
    voucher_id: UUID
    amount: float
    transaction_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VoucherUseResult(BaseModel):
    ok: bool = True
    remaining_amount: float
    use: VoucherUseRead


# Analytics

class CustomerLtvRow(BaseModel):
    customer_id: UUID
    customer_name: str
    customer_phone: Optional[str] = None
    total_revenue: float
    avg_revenue: float
    transaction_count: int
    visit_count: int
    return_rate: float = Field(..., description="(visits - 1) / visits, in percent")
    first_visit: Optional[datetime] = None
    last_visit: Optional[datetime] = None


class VipCustomer(BaseModel):
    customer_id: UUID
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    total_revenue: float
    transaction_count: int


class VipCriteria(BaseModel):
    min_transactions: int
    min_revenue: float


class VipStatistics(BaseModel):
    total_vip_count: int
    total_vip_revenue: float
    avg_vip_revenue: float
    criteria: VipCriteria


class VipCustomersReport(BaseModel):
    vip_customers: List[VipCustomer]
    statistics: VipStatistics
