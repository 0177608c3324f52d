from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, select

from salon_api.db.models.customers import Customer
from salon_api.db.models.inventory import InventoryAlert, Product
from salon_api.db.models.scheduling import Appointment
from salon_api.repositories.finance import TransactionRepository
from salon_api.repositories.scheduling import AppointmentRepository
from salon_api.schemas.finance import FinanceRow
from salon_api.schemas.system import DashboardSummary, RecentAppointment
from salon_api.services.base import BaseService
from salon_api.services.finance import FinanceService
from salon_api.services.staff import month_bounds

RECENT_LIMIT = 5


class DashboardService(BaseService):
    """Headline figures for the owner's dashboard."""

    async def _count(self, stmt) -> int:
        return int((await self.session.execute(stmt)).scalar() or 0)

    # PUBLIC_INTERFACE
    async def summary(self, today: Optional[date] = None) -> DashboardSummary:
        """Counts for today and the current month, month income/expense and the latest activity."""
        today = today or date.today()
        month = today.strftime("%Y-%m")
        month_start, month_end = month_bounds(month)
        day_start = datetime.combine(today, time.min)

        appointments = AppointmentRepository(self.session, self.owner_id)
        today_count = await appointments.count_between(day_start, day_start + timedelta(days=1))
        month_count = await appointments.count_between(month_start, month_end)

        new_customers = await self._count(
            select(func.count(Customer.id)).where(
                Customer.owner_id == self.owner_id,
                Customer.created_at >= month_start,
                Customer.created_at < month_end,
            )
        )
        active_products = await self._count(
            select(func.count(Product.id)).where(Product.owner_id == self.owner_id, Product.active.is_(True))
        )
        open_alerts = await self._count(
            select(func.count(InventoryAlert.id)).where(
                InventoryAlert.owner_id == self.owner_id, InventoryAlert.acknowledged.is_(False)
            )
        )

        finance = await FinanceService(self.session, self.owner_id).summary(
            date_from=month_start.date(), date_to=(month_end - timedelta(days=1)).date(), page_size=1
        )

        stmt = (
            select(Appointment, Customer.name, Product.name)
            .outerjoin(Customer, Customer.id == Appointment.customer_id)
            .outerjoin(Product, Product.id == Appointment.service_id)
            .where(Appointment.owner_id == self.owner_id)
            .order_by(Appointment.appointment_date.desc())
            .limit(RECENT_LIMIT)
        )
        recent_appointments = [
            RecentAppointment(
                id=a.id,
                appointment_date=a.appointment_date,
                status=a.status,
                customer_name=customer_name or "-",
                service_name=service_name or "-",
            )
            for a, customer_name, service_name in (await self.session.execute(stmt)).all()
        ]

        transactions = await TransactionRepository(self.session, self.owner_id).find_all(limit=RECENT_LIMIT)
        recent_transactions = [
            FinanceRow(id=t.id, type="income", date=t.transaction_date, amount=float(t.amount or 0), memo=t.category)
            for t in transactions
        ]

        return DashboardSummary(
            month=month,
            today_appointments=today_count,
            monthly_appointments=month_count,
            monthly_new_customers=new_customers,
            monthly_income=finance.sum_income,
            monthly_expense=finance.sum_expense,
            monthly_profit=finance.profit,
            active_products=active_products,
            open_inventory_alerts=open_alerts,
            recent_appointments=recent_appointments,
            recent_transactions=recent_transactions,
        )
