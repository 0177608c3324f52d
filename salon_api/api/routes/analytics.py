from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.deps import get_owner_id
from salon_api.db.session import get_async_session
from salon_api.schemas.analytics import AppointmentAnalytics, CustomerSegmentation, ProductAnalytics
from salon_api.schemas.customers import CustomerLtvRow, VipCustomersReport
from salon_api.schemas.system import DashboardSummary
from salon_api.services.analytics import AnalyticsService
from salon_api.services.customers import CustomerService
from salon_api.services.dashboard import DashboardService

router = APIRouter(tags=["Analytics"])


# PUBLIC_INTERFACE
@router.get(
    "/analytics/customer-ltv",
    response_model=List[CustomerLtvRow],
    summary="Customer lifetime value",
    description="Revenue, transaction and visit counts per customer, highest revenue first.",
)
async def customer_ltv(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> List[CustomerLtvRow]:
    return await CustomerService(session, owner_id).lifetime_values()


# PUBLIC_INTERFACE
@router.get(
    "/analytics/vip-customers",
    response_model=VipCustomersReport,
    summary="VIP customers",
    description="Customers meeting both the minimum transaction count and the minimum revenue.",
)
async def vip_customers(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    min_transactions: int = Query(5, ge=0),
    min_revenue: float = Query(500000, ge=0),
) -> VipCustomersReport:
    return await CustomerService(session, owner_id).vip_customers(
        min_transactions=min_transactions, min_revenue=min_revenue
    )


# PUBLIC_INTERFACE
@router.get(
    "/analytics/products",
    response_model=ProductAnalytics,
    summary="Product profitability",
    description=(
        "Sales count, linked revenue, turnover and estimated margin per product over the last "
        "`months` months, with top-10 lists and the low-profitability tail."
    ),
)
async def product_analytics(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    months: int = Query(3, ge=1, le=36),
) -> ProductAnalytics:
    return await AnalyticsService(session, owner_id).product_performance(months=months)


# PUBLIC_INTERFACE
@router.get(
    "/analytics/customer-segmentation",
    response_model=CustomerSegmentation,
    summary="Customer segmentation",
    description="Recency, frequency and monetary scores per customer and the resulting segment counts.",
)
async def customer_segmentation(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    period_days: int = Query(90, ge=1, le=3650),
) -> CustomerSegmentation:
    return await AnalyticsService(session, owner_id).customer_segmentation(period_days=period_days)


# PUBLIC_INTERFACE
@router.get(
    "/analytics/appointments",
    response_model=AppointmentAnalytics,
    summary="Appointment patterns",
)
async def appointment_analytics(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    months: int = Query(3, ge=1, le=36),
) -> AppointmentAnalytics:
    """Busiest hours and weekdays, most booked services and staff, and the monthly count."""
    return await AnalyticsService(session, owner_id).appointment_patterns(months=months)

# PUBLIC_INTERFACE
@router.get(
    "/dashboard/summary",
    response_model=DashboardSummary,
    summary="Dashboard summary",
    tags=["Dashboard"],
)
async def dashboard_summary(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> DashboardSummary:
    """Today's and this month's headline numbers plus the latest appointments and transactions."""
    return await DashboardService(session, owner_id).summary()
