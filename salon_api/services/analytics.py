from __future__ import annotations

import bisect
import logging
import math
from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from salon_api.repositories.customers import CustomerRepository
from salon_api.repositories.finance import TransactionRepository
from salon_api.repositories.inventory import ProductRepository
from salon_api.repositories.scheduling import AppointmentRepository
from salon_api.repositories.staff import StaffRepository
from salon_api.schemas.analytics import (
    AppointmentAnalytics,
    AppointmentAnalyticsSummary,
    CustomerRfm,
    CustomerSegmentation,
    HourCount,
    MonthCount,
    NamedCount,
    ProductAnalytics,
    ProductAnalyticsSummary,
    ProductPerformance,
    SegmentStats,
    WeekdayCount,
)
from salon_api.services.base import BaseService, as_naive_datetime, utc_now_naive
from salon_api.services.staff import months_ago

logger = logging.getLogger(__name__)

# No purchase cost is recorded, so cost is estimated as a share of the price.
COST_RATIO = 0.3
TOP_LIMIT = 10
TOP_HOURS = 5
LOW_PROFITABILITY_QUANTILE = 0.2

SEGMENTS = ("vip", "loyal", "dormant", "potential_vip", "at_risk", "regular")
RECENCY_SCORES = ((30, 5), (60, 4), (90, 3), (180, 2))

WEEKDAY_LABELS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

# Upper bound for rows pulled into an in-memory aggregation.
SCAN_LIMIT = 100000


def recency_score(days: int) -> int:
    for limit, score in RECENCY_SCORES:
        if days <= limit:
            return score
    return 1


def quintile_score(value: float, ascending: Sequence[float]) -> int:
    """
    5 for the top fifth of `ascending`, down to 1 for the bottom fifth.

    Equal values share the rank of the first of them, counted from the largest.
    """
    if not ascending:
        return 1
    size = math.ceil(len(ascending) / 5)
    rank = len(ascending) - bisect.bisect_right(ascending, value)
    return min(5, max(1, 5 - rank // size))


def classify_segment(r: int, f: int, m: int) -> str:
    if r >= 4 and f >= 4 and m >= 4:
        return "vip"
    if r >= 3 and f >= 3 and m >= 3:
        return "loyal"
    if r <= 2 and f <= 2 and m <= 2:
        return "dormant"
    if m >= 4 and (r >= 4 or f >= 4):
        return "potential_vip"
    if r <= 2:
        return "at_risk"
    return "regular"


def sunday_first_weekday(value: datetime) -> int:
    return (value.weekday() + 1) % 7


class AnalyticsService(BaseService):
    """Owner-wide reports over products, customers and appointments."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.products = ProductRepository(session, owner_id)
        self.customers = CustomerRepository(session, owner_id)
        self.staff = StaffRepository(session, owner_id)
        self.appointments = AppointmentRepository(session, owner_id)
        self.transactions = TransactionRepository(session, owner_id)

    def _since(self, months: int, today: Optional[date]) -> datetime:
        return datetime.combine(months_ago(today or date.today(), months), time.min)

    # PUBLIC_INTERFACE
    async def product_performance(self, months: int = 3, today: Optional[date] = None) -> ProductAnalytics:
        """
        Sales, revenue and estimated profitability of every product over the last `months` months.

        sales_count: appointments with the product as service
        total_revenue: transactions linked to those appointments
        margin: price minus an estimated cost of COST_RATIO * price
        profitability_score: revenue * margin_rate / 100 * turnover_rate
        Ranked lists only consider products with at least one sale; low_profitability
        holds those at or below the score of the bottom fifth of all products.
        """
        since = self._since(months, today)
        products = await self.products.find_all(limit=SCAN_LIMIT, order_by="name", ascending=True)
        appointments = await self.appointments.list_between(start=since, limit=SCAN_LIMIT)
        sales = Counter(a.service_id for a in appointments if a.service_id is not None)
        revenue: Dict[UUID, float] = defaultdict(float)
        for t, _, service_id in await self.transactions.list_linked_since(since):
            if service_id is not None:
                revenue[service_id] += float(t.amount or 0)

        rows: List[ProductPerformance] = []
        for p in products:
            price = float(p.price or 0)
            count = sales.get(p.id, 0)
            total = revenue.get(p.id, 0.0)
            margin = price - price * COST_RATIO
            margin_rate = margin / price * 100 if price > 0 else 0.0
            turnover = count / months
            rows.append(
                ProductPerformance(
                    product_id=p.id,
                    product_name=p.name,
                    product_price=price,
                    sales_count=count,
                    total_revenue=total,
                    avg_revenue=total / count if count else 0.0,
                    turnover_rate=turnover,
                    margin_rate=margin_rate,
                    total_margin=count * margin,
                    profitability_score=total * margin_rate / 100 * turnover,
                    stock_count=p.stock_count or 0,
                    safety_stock=p.safety_stock or 0,
                    active=p.active is not False,
                )
            )

        sold = [r for r in rows if r.sales_count > 0]
        scores = sorted(r.profitability_score for r in rows)
        threshold = scores[math.floor(len(scores) * LOW_PROFITABILITY_QUANTILE)] if scores else 0.0
        return ProductAnalytics(
            products=rows,
            top_profitability=sorted(sold, key=lambda r: r.profitability_score, reverse=True)[:TOP_LIMIT],
            top_revenue=sorted(sold, key=lambda r: r.total_revenue, reverse=True)[:TOP_LIMIT],
            top_turnover=sorted(sold, key=lambda r: r.turnover_rate, reverse=True)[:TOP_LIMIT],
            low_profitability=[r for r in sold if r.profitability_score <= threshold],
            summary=ProductAnalyticsSummary(
                total_products=len(products),
                active_products=sum(1 for p in products if p.active is not False),
                months=months,
            ),
        )

    # PUBLIC_INTERFACE
    async def customer_segmentation(self, period_days: int = 90, now: Optional[datetime] = None) -> CustomerSegmentation:
        """
        RFM scoring of every customer over the last `period_days` days.

        recency: whole days since the latest transaction or visit, period_days when none
        frequency: the larger of the transaction and visit counts
        monetary: transaction total
        R is scored on fixed day thresholds, F and M by quintile among all customers.
        """
        now = now or utc_now_naive()
        cutoff = now - timedelta(days=period_days)
        customers = await self.customers.find_all(limit=SCAN_LIMIT, order_by="name", ascending=True)
        transactions = await self.transactions.list_between(date_from=cutoff.date())
        appointments = await self.appointments.list_between(start=cutoff, limit=SCAN_LIMIT)

        spent: Dict[UUID, List[float]] = defaultdict(list)
        activity: Dict[UUID, List[datetime]] = defaultdict(list)
        visits: Counter = Counter()
        for t in transactions:
            if t.customer_id is None:
                continue
            spent[t.customer_id].append(float(t.amount or 0))
            activity[t.customer_id].append(as_naive_datetime(t.transaction_date))
        for a in appointments:
            if a.customer_id is None:
                continue
            visits[a.customer_id] += 1
            activity[a.customer_id].append(as_naive_datetime(a.appointment_date))

        base = []
        for c in customers:
            latest = max(activity.get(c.id, []), default=None)
            recency = max(0, (now - latest).days) if latest is not None else period_days
            tx_count = len(spent.get(c.id, []))
            base.append((c, recency, max(tx_count, visits[c.id]), sum(spent.get(c.id, [])), tx_count, latest))

        frequencies = sorted(row[2] for row in base)
        monetary = sorted(row[3] for row in base)
        rows: List[CustomerRfm] = []
        stats = {name: SegmentStats() for name in SEGMENTS}
        for c, recency, frequency, total, tx_count, latest in base:
            r = recency_score(recency)
            f = quintile_score(frequency, frequencies)
            m = quintile_score(total, monetary)
            segment = classify_segment(r, f, m)
            rows.append(
                CustomerRfm(
                    customer_id=c.id,
                    customer_name=c.name,
                    customer_phone=c.phone,
                    customer_email=c.email,
                    recency=recency,
                    frequency=frequency,
                    monetary=total,
                    transaction_count=tx_count,
                    visit_count=visits[c.id],
                    last_activity=latest,
                    r_score=r,
                    f_score=f,
                    m_score=m,
                    segment=segment,
                )
            )
            stats[segment].count += 1
            stats[segment].total_revenue += total
        for item in stats.values():
            item.avg_revenue = item.total_revenue / item.count if item.count else 0.0

        rows.sort(key=lambda r: r.monetary, reverse=True)
        logger.info("Segmented %d customers over %d days", len(rows), period_days)
        return CustomerSegmentation(
            customers=rows, segment_stats=stats, total_customers=len(rows), period_days=period_days
        )

    # PUBLIC_INTERFACE
    async def appointment_patterns(self, months: int = 3, today: Optional[date] = None) -> AppointmentAnalytics:
        """Appointment counts by hour of day, weekday (Sunday first), service, staff member and month."""
        since = self._since(months, today)
        appointments = await self.appointments.list_between(start=since, limit=SCAN_LIMIT)
        products = {p.id: p.name for p in await self.products.find_all(limit=SCAN_LIMIT)}
        staff = {s.id: s.name for s in await self.staff.find_all(limit=SCAN_LIMIT)}

        hours = [0] * 24
        weekdays = [0] * 7
        services: Counter = Counter()
        members: Counter = Counter()
        monthly: Counter = Counter()
        for a in appointments:
            when = a.appointment_date
            hours[when.hour] += 1
            weekdays[sunday_first_weekday(when)] += 1
            monthly[when.strftime("%Y-%m")] += 1
            if a.service_id in products:
                services[a.service_id] += 1
            if a.staff_id in staff:
                members[a.staff_id] += 1

        hourly = [HourCount(hour=h, count=n) for h, n in enumerate(hours)]
        by_weekday = [WeekdayCount(day=d, label=WEEKDAY_LABELS[d], count=n) for d, n in enumerate(weekdays)]
        return AppointmentAnalytics(
            summary=AppointmentAnalyticsSummary(total_appointments=len(appointments), months=months),
            hourly=hourly,
            top_hours=sorted(hourly, key=lambda h: h.count, reverse=True)[:TOP_HOURS],
            weekdays=by_weekday,
            top_weekdays=sorted(by_weekday, key=lambda d: d.count, reverse=True),
            top_services=[
                NamedCount(id=k, name=products[k], count=n) for k, n in services.most_common(TOP_LIMIT)
            ],
            total_services=len(services),
            top_staff=[NamedCount(id=k, name=staff[k], count=n) for k, n in members.most_common(TOP_LIMIT)],
            total_staff=len(members),
            monthly_trends=[MonthCount(month=k, count=n) for k, n in sorted(monthly.items())],
        )
