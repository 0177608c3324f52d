from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

CustomerSegment = Literal["vip", "loyal", "dormant", "potential_vip", "at_risk", "regular"]


# Products

class ProductPerformance(BaseModel):
    product_id: UUID
    product_name: str
    product_price: float
    sales_count: int = Field(..., description="Appointments booked with the product as their service")
    total_revenue: float
    avg_revenue: float
    turnover_rate: float = Field(..., description="Sales per month of the window")
    margin_rate: float = Field(..., description="Percent of the price left after the estimated cost")
    total_margin: float
    profitability_score: float
    stock_count: int
    safety_stock: int
    active: bool


class ProductAnalyticsSummary(BaseModel):
    total_products: int
    active_products: int
    months: int


class ProductAnalytics(BaseModel):
    """Per-product sales and estimated margin with ranked shortlists."""
    products: List[ProductPerformance]
    top_profitability: List[ProductPerformance]
    top_revenue: List[ProductPerformance]
    top_turnover: List[ProductPerformance]
    low_profitability: List[ProductPerformance]
    summary: ProductAnalyticsSummary


# Customer segmentation

class CustomerRfm(BaseModel):
    customer_id: UUID
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    recency: int = Field(..., description="Days since the latest transaction or visit in the window")
    frequency: int
    monetary: float
    transaction_count: int
    visit_count: int
    last_activity: Optional[datetime] = None
    r_score: int
    f_score: int
    m_score: int
    segment: CustomerSegment


class SegmentStats(BaseModel):
    count: int = 0
    total_revenue: float = 0
    avg_revenue: float = 0


class CustomerSegmentation(BaseModel):
    """Recency, frequency and monetary scores per customer, grouped into segments."""
    customers: List[CustomerRfm]
    segment_stats: Dict[str, SegmentStats]
    total_customers: int
    period_days: int


# Appointment patterns

class HourCount(BaseModel):
    hour: int
    count: int


class WeekdayCount(BaseModel):
    day: int = Field(..., description="0 = Sunday ... 6 = Saturday")
    label: str
    count: int


class NamedCount(BaseModel):
    id: UUID
    name: str
    count: int


class MonthCount(BaseModel):
    month: str
    count: int


class AppointmentAnalyticsSummary(BaseModel):
    total_appointments: int
    months: int


class AppointmentAnalytics(BaseModel):
    """When appointments happen and which services and staff take them."""
    summary: AppointmentAnalyticsSummary
    hourly: List[HourCount]
    top_hours: List[HourCount]
    weekdays: List[WeekdayCount]
    top_weekdays: List[WeekdayCount]
    top_services: List[NamedCount]
    total_services: int
    top_staff: List[NamedCount]
    total_staff: int
    monthly_trends: List[MonthCount]
