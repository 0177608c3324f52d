from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from salon_api.core.errors import BadRequestError, NotFoundError
from salon_api.db.models.customers import (
    CustomerProduct,
    CustomerProductLedger,
    PointsLedger,
    Voucher,
    VoucherUse,
)
from salon_api.db.models.finance import Transaction
from salon_api.db.models.scheduling import Appointment
from salon_api.repositories.customers import (
    CustomerProductLedgerRepository,
    CustomerProductRepository,
    CustomerRepository,
    PointsLedgerRepository,
    VoucherRepository,
    VoucherUseRepository,
)
from salon_api.repositories.finance import TransactionRepository
from salon_api.repositories.inventory import ProductRepository
from salon_api.repositories.scheduling import AppointmentRepository
from salon_api.schemas.customers import (
    CustomerLtv,
    CustomerLtvRow,
    CustomerRead,
    CustomerStats,
    CustomerTimeline,
    CustomerEvents,
    CustomerVisits,
    HoldingCreate,
    HoldingLedgerCreate,
    HoldingUpdate,
    PointsReasonSum,
    PointsReport,
    TimelineEvent,
    VipCriteria,
    VipCustomer,
    VipCustomersReport,
    VipStatistics,
    VoucherCreate,
    VoucherUseCreate,
)
from salon_api.services.base import BaseService, as_naive_datetime

logger = logging.getLogger(__name__)

DEFAULT_POINTS_REASON = "other"
DEFAULT_HOLDING_REASON = "update"


class CustomerService(BaseService):
    """Customer statistics and analytics."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.customers = CustomerRepository(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)
        self.appointments = AppointmentRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def stats(self, customer_id: UUID) -> CustomerStats:
        """
        Compute lifetime value, visit counts, timeline and monthly revenue for a customer.

        Visits count only completed appointments; return_rate is completed over all
        appointments in percent.
        """
        customer = await self.customers.find_by_id(customer_id)
        transactions = await self.transactions.list_for_customer(customer_id)
        appointments = await self.appointments.list_for_customer(customer_id)

        total_revenue = float(sum(t.amount or 0 for t in transactions))
        count = len(transactions)
        completed = [a for a in appointments if a.status == "complete"]

        monthly: Dict[str, float] = defaultdict(float)
        for t in transactions:
            if t.transaction_date:
                monthly[t.transaction_date.strftime("%Y-%m")] += float(t.amount or 0)

        last_tx = max((t.transaction_date for t in transactions if t.transaction_date), default=None)
        return CustomerStats(
            customer=CustomerRead.model_validate(customer),
            ltv=CustomerLtv(
                total_revenue=total_revenue,
                avg_revenue=total_revenue / count if count else 0.0,
                transaction_count=count,
            ),
            visits=CustomerVisits(
                total_visits=len(completed),
                total_appointments=len(appointments),
                scheduled=sum(1 for a in appointments if a.status == "scheduled"),
                cancelled=sum(1 for a in appointments if a.status == "cancelled"),
                return_rate=(len(completed) / len(appointments) * 100) if appointments else 0.0,
            ),
            timeline=CustomerTimeline(
                first_visit=appointments[0].appointment_date if appointments else None,
                last_visit=appointments[-1].appointment_date if appointments else None,
                last_transaction=last_tx,
            ),
            monthly_revenue=dict(sorted(monthly.items())),
        )

    async def _revenue_by_customer(self) -> Dict[UUID, Tuple[float, int]]:
        stmt = (
            select(Transaction.customer_id, func.coalesce(func.sum(Transaction.amount), 0), func.count(Transaction.id))
            .where(Transaction.owner_id == self.owner_id, Transaction.customer_id.is_not(None))
            .group_by(Transaction.customer_id)
        )
        res = await self.session.execute(stmt)
        return {row[0]: (float(row[1] or 0), int(row[2])) for row in res.all()}

    # PUBLIC_INTERFACE
    async def lifetime_values(self) -> List[CustomerLtvRow]:
        """Per-customer revenue and visit history, highest revenue first."""
        revenue = await self._revenue_by_customer()
        visit_stmt = (
            select(
                Appointment.customer_id,
                func.count(Appointment.id),
                func.min(Appointment.appointment_date),
                func.max(Appointment.appointment_date),
            )
            .where(Appointment.owner_id == self.owner_id, Appointment.customer_id.is_not(None))
            .group_by(Appointment.customer_id)
        )
        visits = {row[0]: (int(row[1]), row[2], row[3]) for row in (await self.session.execute(visit_stmt)).all()}

        customers = await self.customers.find_all(limit=10000, order_by="name", ascending=True)
        rows: List[CustomerLtvRow] = []
        for c in customers:
            total, count = revenue.get(c.id, (0.0, 0))
            visit_count, first, last = visits.get(c.id, (0, None, None))
            rows.append(
                CustomerLtvRow(
                    customer_id=c.id,
                    customer_name=c.name,
                    customer_phone=c.phone,
                    total_revenue=total,
                    avg_revenue=total / count if count else 0.0,
                    transaction_count=count,
                    visit_count=visit_count,
                    return_rate=((visit_count - 1) / visit_count * 100) if visit_count > 1 else 0.0,
                    first_visit=first,
                    last_visit=last,
                )
            )
        rows.sort(key=lambda r: r.total_revenue, reverse=True)
        return rows

    # PUBLIC_INTERFACE
    async def vip_customers(self, min_transactions: int = 5, min_revenue: float = 500000) -> VipCustomersReport:
        """Customers meeting both the transaction-count and revenue thresholds."""
        revenue = await self._revenue_by_customer()
        customers = await self.customers.find_all(limit=10000, order_by="name", ascending=True)
        vips = []
        for c in customers:
            total, count = revenue.get(c.id, (0.0, 0))
            if count >= min_transactions and total >= min_revenue:
                vips.append(
                    VipCustomer(
                        customer_id=c.id,
                        customer_name=c.name,
                        customer_phone=c.phone,
                        customer_email=c.email,
                        total_revenue=total,
                        transaction_count=count,
                    )
                )
        vips.sort(key=lambda v: v.total_revenue, reverse=True)
        total_vip = sum(v.total_revenue for v in vips)
        return VipCustomersReport(
            vip_customers=vips,
            statistics=VipStatistics(
                total_vip_count=len(vips),
                total_vip_revenue=total_vip,
                avg_vip_revenue=total_vip / len(vips) if vips else 0.0,
                criteria=VipCriteria(min_transactions=min_transactions, min_revenue=min_revenue),
            ),
        )

    # PUBLIC_INTERFACE
    async def timeline(self, customer_id: UUID, limit: int = 200) -> CustomerEvents:
        """
        Merge the customer's appointments, transactions, point movements, holdings
        and holding changes into one list, newest first, cut to `limit` events.

        Point events carry the running balance after the movement.
        """
        await self.customers.find_by_id(customer_id)
        points = PointsLedgerRepository(self.session, self.owner_id)
        holdings = CustomerProductRepository(self.session, self.owner_id)
        holding_ledger = CustomerProductLedgerRepository(self.session, self.owner_id)

        events: List[TimelineEvent] = []
        for a in await self.appointments.list_for_customer(customer_id):
            events.append(
                TimelineEvent(
                    id=f"appointment-{a.id}",
                    type="appointment",
                    occurred_at=as_naive_datetime(a.appointment_date),
                    title=f"Appointment: {a.status}",
                    description=a.notes,
                    details={"appointment_id": a.id, "status": a.status, "service_id": a.service_id, "staff_id": a.staff_id},
                )
            )
        for t in await self.transactions.list_for_customer(customer_id):
            amount = float(t.amount or 0)
            events.append(
                TimelineEvent(
                    id=f"transaction-{t.id}",
                    type="transaction",
                    occurred_at=as_naive_datetime(t.transaction_date),
                    title=f"Transaction: {amount:,.0f}",
                    description=t.notes,
                    details={"transaction_id": t.id, "amount": amount, "appointment_id": t.appointment_id},
                )
            )
        balance = 0
        for p in reversed(await points.list_entries(customer_id)):
            balance += p.delta
            events.append(
                TimelineEvent(
                    id=f"points-{p.id}",
                    type="points",
                    occurred_at=as_naive_datetime(p.created_at),
                    title=f"Points {p.delta:+,} (balance {balance:,})",
                    description=p.reason,
                    details={"points_ledger_id": p.id, "delta": p.delta, "balance": balance},
                )
            )
        for h, product_name in await holdings.list_with_product(customer_id):
            events.append(
                TimelineEvent(
                    id=f"holding-{h.id}",
                    type="holding",
                    occurred_at=as_naive_datetime(h.created_at),
                    title=f"Holding: {product_name or '-'} x {h.quantity}",
                    description=h.notes,
                    details={"holding_id": h.id, "product_id": h.product_id, "quantity": h.quantity},
                )
            )
        for entry, product_name in await holding_ledger.list_for_customer(customer_id):
            events.append(
                TimelineEvent(
                    id=f"holding_change-{entry.id}",
                    type="holding_change",
                    occurred_at=as_naive_datetime(entry.created_at),
                    title=f"Holding {product_name or '-'} {entry.delta:+}",
                    description=entry.reason or entry.notes,
                    details={"holding_id": entry.customer_product_id, "delta": entry.delta},
                )
            )

        events.sort(key=lambda e: e.occurred_at, reverse=True)
        return CustomerEvents(events=events[:limit], total=len(events))


class PointsService(BaseService):
    """Loyalty points: balance, ledger and reporting."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.customers = CustomerRepository(session, owner_id)
        self.ledger = PointsLedgerRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def get_balance(
        self,
        customer_id: UUID,
        *,
        with_ledger: bool = False,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[int, Optional[List[PointsLedger]]]:
        """Balance over all time; the ledger page honours the date range."""
        await self.customers.find_by_id(customer_id)
        balance = await self.ledger.balance(customer_id)
        entries = None
        if with_ledger:
            entries = await self.ledger.list_entries(
                customer_id, date_from=date_from, date_to=date_to, limit=limit, offset=offset
            )
        return balance, entries

    # PUBLIC_INTERFACE
    async def add_entry(self, customer_id: UUID, delta: int, reason: Optional[str]) -> int:
        """Append a ledger entry and return the new balance."""
        if delta == 0:
            raise BadRequestError("delta must not be zero")
        await self.customers.find_by_id(customer_id)
        await self.ledger.create({"customer_id": customer_id, "delta": delta, "reason": reason})
        return await self.ledger.balance(customer_id)

    # PUBLIC_INTERFACE
    async def list_entries(
        self,
        customer_id: UUID,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[PointsLedger]:
        await self.customers.find_by_id(customer_id)
        return await self.ledger.list_entries(
            customer_id, date_from=date_from, date_to=date_to, limit=limit, offset=offset
        )

    # PUBLIC_INTERFACE
    async def report(
        self, customer_id: UUID, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None
    ) -> PointsReport:
        """Totals of additions/deductions in the range, grouped by reason."""
        await self.customers.find_by_id(customer_id)
        entries = await self.ledger.list_entries(customer_id, date_from=date_from, date_to=date_to)
        total_add = sum(e.delta for e in entries if e.delta > 0)
        total_deduct = sum(-e.delta for e in entries if e.delta < 0)

        grouped: Dict[str, List[int]] = {}
        for e in entries:
            key = e.reason or DEFAULT_POINTS_REASON
            bucket = grouped.setdefault(key, [0, 0])
            bucket[0] += abs(e.delta)
            bucket[1] += 1
        by_reason = [
            PointsReasonSum(reason=reason, sum=values[0], count=values[1])
            for reason, values in sorted(grouped.items(), key=lambda kv: kv[1][0], reverse=True)
        ]
        return PointsReport(
            total_add=total_add,
            total_deduct=total_deduct,
            net=total_add - total_deduct,
            by_reason=by_reason,
        )


class HoldingService(BaseService):
    """Products kept for customers and their quantity ledger."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.customers = CustomerRepository(session, owner_id)
        self.products = ProductRepository(session, owner_id)
        self.holdings = CustomerProductRepository(session, owner_id)
        self.ledger = CustomerProductLedgerRepository(session, owner_id)

    async def list_holdings(self, customer_id: UUID) -> List[Tuple[CustomerProduct, Optional[str]]]:
        await self.customers.find_by_id(customer_id)
        return await self.holdings.list_with_product(customer_id)

    # PUBLIC_INTERFACE
    async def create_holding(self, customer_id: UUID, payload: HoldingCreate) -> Tuple[CustomerProduct, str]:
        await self.customers.find_by_id(customer_id)
        product = await self.products.find_by_id(payload.product_id)
        holding = await self.holdings.create(
            {
                "customer_id": customer_id,
                "product_id": product.id,
                "quantity": payload.quantity,
                "notes": payload.notes,
            }
        )
        return holding, product.name

    # PUBLIC_INTERFACE
    async def update_holding(self, holding_id: UUID, payload: HoldingUpdate) -> CustomerProduct:
        """
        Apply quantity/notes changes. When the quantity changes and no_ledger is not set,
        a ledger entry with delta = new - old is written in the same commit.
        """
        holding = await self.holdings.find_by_id_for_update(holding_id)
        old_quantity = holding.quantity
        if payload.quantity is not None:
            holding.quantity = payload.quantity
        if "notes" in payload.model_fields_set:
            holding.notes = payload.notes

        delta = holding.quantity - old_quantity
        if delta != 0 and not payload.no_ledger:
            await self.ledger.add(
                self.ledger.build(
                    {
                        "customer_product_id": holding.id,
                        "delta": delta,
                        "reason": payload.reason or DEFAULT_HOLDING_REASON,
                    }
                )
            )
        await self.holdings.commit()
        await self.holdings.refresh(holding)
        return holding

    # PUBLIC_INTERFACE
    async def add_ledger_entry(self, holding_id: UUID, payload: HoldingLedgerCreate) -> CustomerProductLedger:
        """Record a manual movement and move the holding quantity by delta."""
        holding = await self.holdings.find_by_id_for_update(holding_id)
        new_quantity = holding.quantity + payload.delta
        if new_quantity < 0:
            raise BadRequestError("Holding quantity cannot become negative")
        holding.quantity = new_quantity
        entry = self.ledger.build(
            {
                "customer_product_id": holding.id,
                "delta": payload.delta,
                "reason": payload.reason,
                "notes": payload.notes,
            }
        )
        await self.ledger.add(entry)
        await self.ledger.commit()
        await self.ledger.refresh(entry)
        return entry

    async def ledger_for_holding(self, holding_id: UUID) -> List[CustomerProductLedger]:
        await self.holdings.find_by_id(holding_id)
        return await self.ledger.list_for_holding(holding_id)

    async def ledger_for_customer(self, customer_id: UUID) -> List[Tuple[CustomerProductLedger, Optional[str]]]:
        await self.customers.find_by_id(customer_id)
        return await self.ledger.list_for_customer(customer_id)


class VoucherService(BaseService):
    """Prepaid vouchers and their redemptions."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.customers = CustomerRepository(session, owner_id)
        self.vouchers = VoucherRepository(session, owner_id)
        self.uses = VoucherUseRepository(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)

    async def list_vouchers(self, customer_id: UUID) -> List[Voucher]:
        await self.customers.find_by_id(customer_id)
        return await self.vouchers.find_all(filters={"customer_id": customer_id}, limit=1000)

    # PUBLIC_INTERFACE
    async def issue(self, customer_id: UUID, payload: VoucherCreate) -> Voucher:
        """Create a voucher whose remaining balance starts at its total amount."""
        await self.customers.find_by_id(customer_id)
        return await self.vouchers.create(
            {
                "customer_id": customer_id,
                "name": payload.name.strip(),
                "total_amount": payload.total_amount,
                "remaining_amount": payload.total_amount,
                "expires_at": payload.expires_at,
            }
        )

    # PUBLIC_INTERFACE
    async def use(self, voucher_id: UUID, payload: VoucherUseCreate) -> Tuple[Voucher, VoucherUse]:
        """
        Redeem an amount from a voucher. The balance update and the use record
        are committed together.

        Raises:
            BadRequestError: non-positive amount, expired voucher or insufficient balance.
        """
        if payload.amount <= 0:
            raise BadRequestError("amount must be greater than zero")
        voucher = await self.vouchers.find_by_id_for_update(voucher_id)
        if voucher.expires_at is not None and voucher.expires_at < date.today():
            raise BadRequestError("Voucher has expired")
        remaining = float(voucher.remaining_amount or 0)
        if remaining < payload.amount:
            raise BadRequestError("Insufficient voucher balance")
        if payload.transaction_id is not None and not await self.transactions.exists(payload.transaction_id):
            raise NotFoundError("transactions not found")

        voucher.remaining_amount = round(remaining - payload.amount, 2)
        use = self.uses.build(
            {"voucher_id": voucher.id, "amount": payload.amount, "transaction_id": payload.transaction_id}
        )
        await self.uses.add(use)
        await self.uses.commit()
        await self.uses.refresh(use)
        await self.vouchers.refresh(voucher)
        logger.info("Voucher %s used: %.2f, remaining %.2f", voucher.id, payload.amount, voucher.remaining_amount)
        return voucher, use

    async def list_uses(self, voucher_id: UUID) -> List[VoucherUse]:
        await self.vouchers.find_by_id(voucher_id)
        return await self.uses.list_for_voucher(voucher_id)
