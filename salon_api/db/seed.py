"""
Database seeding utilities for a demo owner.

Seeds (only when the demo owner does not exist yet):
- Demo owner account (DEMO_USER_EMAIL / DEMO_USER_PASSWORD)
- Sample customers with opening loyalty points
- Sample products/services with stock levels
- Two staff members with payroll settings
- One appointment today, its payment and a monthly rent expense

Usage:
  python -m salon_api.db.run_migrations upgrade head
  python -m salon_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timezone
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.security import get_password_hash
from salon_api.core.settings import get_app_settings
from salon_api.db.models import (
    Appointment,
    Customer,
    Expense,
    PayrollSettings,
    PointsLedger,
    Product,
    Staff,
    Transaction,
)
from salon_api.db.session import get_session_maker
from salon_api.repositories.security import UserRepository

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with a demo owner and a small working data set.

    Safe to run repeatedly: nothing is written when the demo owner already exists.
    """
    settings = get_app_settings()
    async with get_session_maker()() as session:
        users = UserRepository(session)
        if await users.get_user_by_email(settings.DEMO_USER_EMAIL):
            logger.info("Demo owner %s already present; skipping seed.", settings.DEMO_USER_EMAIL)
            return

        owner = await users.create_user(
            email=settings.DEMO_USER_EMAIL,
            full_name="Demo Salon",
            hashed_password=get_password_hash(settings.DEMO_USER_PASSWORD),
        )
        customers = await _seed_customers(session, owner.id)
        products = await _seed_products(session, owner.id)
        staff = await _seed_staff(session, owner.id)
        await _seed_activity(session, owner.id, customers[0], staff[0], products[0])
        await session.commit()


async def _seed_customers(session: AsyncSession, owner_id: UUID) -> List[Customer]:
    customers = [
        Customer(owner_id=owner_id, name="Kim Minji", phone="010-1234-5678", email="minji@example.com"),
        Customer(owner_id=owner_id, name="Lee Seoyeon", phone="010-2345-6789", features="Sensitive scalp"),
        Customer(owner_id=owner_id, name="Park Jiho", phone="010-3456-7890"),
    ]
    session.add_all(customers)
    await session.flush()
    session.add_all(
        PointsLedger(owner_id=owner_id, customer_id=c.id, delta=1000, reason="Welcome points")
        for c in customers
    )
    return customers


async def _seed_products(session: AsyncSession, owner_id: UUID) -> List[Product]:
    products = [
        Product(owner_id=owner_id, name="Haircut", price=30000, description="Cut and styling", stock_count=0, safety_stock=0),
        Product(owner_id=owner_id, name="Perm", price=120000, description="Digital perm", stock_count=0, safety_stock=0),
        Product(owner_id=owner_id, name="Repair Shampoo", price=25000, stock_count=20, safety_stock=5),
        Product(owner_id=owner_id, name="Hair Essence", price=18000, stock_count=3, safety_stock=5),
    ]
    session.add_all(products)
    await session.flush()
    return products


async def _seed_staff(session: AsyncSession, owner_id: UUID) -> List[Staff]:
    staff = [
        Staff(owner_id=owner_id, name="Choi Yuna", role="Designer", incentive_rate=10.0),
        Staff(owner_id=owner_id, name="Jung Hana", role="Assistant", incentive_rate=0.0),
    ]
    session.add_all(staff)
    await session.flush()
    session.add_all(
        [
            PayrollSettings(owner_id=owner_id, staff_id=staff[0].id, base_salary=2500000, hourly_rate=15000),
            PayrollSettings(owner_id=owner_id, staff_id=staff[1].id, base_salary=2100000, hourly_rate=12000),
        ]
    )
    return staff


async def _seed_activity(
    session: AsyncSession,
    owner_id: UUID,
    customer: Customer,
    staff: Staff,
    service: Product,
) -> None:
    today = date.today()
    appointment = Appointment(
        owner_id=owner_id,
        customer_id=customer.id,
        staff_id=staff.id,
        service_id=service.id,
        appointment_date=datetime.combine(today, time(14, 0), tzinfo=timezone.utc),
        status="complete",
        total_price=service.price,
    )
    session.add(appointment)
    await session.flush()
    session.add_all(
        [
            Transaction(
                owner_id=owner_id,
                appointment_id=appointment.id,
                customer_id=customer.id,
                type="service",
                amount=service.price or 0,
                category=service.name,
                payment_method="card",
                transaction_date=today,
            ),
            Expense(
                owner_id=owner_id,
                expense_date=today.replace(day=1),
                amount=1500000,
                category="Rent",
                memo="Monthly rent",
            ),
        ]
    )


if __name__ == "__main__":
    asyncio.run(seed_all())
