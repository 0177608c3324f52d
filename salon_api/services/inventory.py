from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from salon_api.core.errors import BadRequestError
from salon_api.db.models.inventory import InventoryAlert, Product, ProductBatch
from salon_api.repositories.inventory import (
    InventoryAlertRepository,
    InventoryTransactionRepository,
    ProductBatchRepository,
    ProductRepository,
)
from salon_api.schemas.inventory import (
    ExpiryReport,
    ExpirySummary,
    InventoryAlertRead,
    InventoryItem,
    ProductBatchCreate,
    ProductBatchRead,
    ProductRead,
    ProductSummary,
    StockAdjustRequest,
    StockAdjustResult,
)
from salon_api.services.base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_STOCK = 5
EXPIRY_WARNING_DAYS = 30


def batch_with_expiry(batch: ProductBatch, product_name: Optional[str], today: date, days: int) -> ProductBatchRead:
    """Read model of a batch with days until expiry, expired and expiring-within-`days` flags."""
    remaining = (batch.expiry_date - today).days
    item = ProductBatchRead.model_validate(batch)
    item.product_name = product_name
    item.days_until_expiry = remaining
    item.is_expired = remaining < 0
    item.is_expiring_soon = 0 <= remaining <= days
    return item


def stock_status(stock_count: int, safety_stock: Optional[int]) -> str:
    """Classify a stock level as out_of_stock, low_stock or normal."""
    threshold = DEFAULT_SAFETY_STOCK if safety_stock is None else safety_stock
    if stock_count <= 0:
        return "out_of_stock"
    if stock_count <= threshold:
        return "low_stock"
    return "normal"


class InventoryService(BaseService):
    """
    Stock levels, movements, alerts and batch expiry.

    Every stock movement writes an inventory transaction with before/after counts
    and, when the new level is at or below the safety stock, an alert unless an
    unacknowledged one of the same type already exists for the product.
    """

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session, owner_id)
        self.products = ProductRepository(session, owner_id)
        self.transactions = InventoryTransactionRepository(session, owner_id)
        self.alerts = InventoryAlertRepository(session, owner_id)
        self.batches = ProductBatchRepository(session, owner_id)

    # PUBLIC_INTERFACE
    async def list_inventory(self, *, search: Optional[str] = None, status: Optional[str] = None) -> List[InventoryItem]:
        """Products with derived inventory_status and needs_restock, ordered by name."""
        products = await self.products.find_all(search=search, order_by="name", ascending=True, limit=10000)
        items = []
        for p in products:
            current = stock_status(p.stock_count, p.safety_stock)
            if status and current != status:
                continue
            items.append(
                InventoryItem(
                    **ProductRead.model_validate(p).model_dump(),
                    inventory_status=current,
                    needs_restock=current != "normal",
                )
            )
        return items

    # PUBLIC_INTERFACE
    async def adjust_stock(self, payload: StockAdjustRequest) -> StockAdjustResult:
        """
        Apply a stock movement.

        adjustment sets the absolute count, purchase adds and sale subtracts.
        The product update, the transaction log entry and any alert are committed together.

        Raises:
            NotFoundError: product not owned or missing.
            BadRequestError: the movement would make stock negative.
        """
        product = await self.products.find_by_id_for_update(payload.product_id)
        before = int(product.stock_count or 0)
        if payload.type == "adjustment":
            after = payload.quantity
        elif payload.type == "purchase":
            after = before + payload.quantity
        else:
            after = before - payload.quantity
        if after < 0:
            raise BadRequestError(f"Insufficient stock: {before} on hand, {payload.quantity} requested")

        product.stock_count = after
        await self.transactions.add(
            self.transactions.build(
                {
                    "product_id": product.id,
                    "type": payload.type,
                    "quantity": after - before,
                    "before_count": before,
                    "after_count": after,
                    "memo": payload.memo,
                }
            )
        )
        alert_type = await self._maybe_raise_alert(product, after)
        await self.products.commit()
        logger.info("Stock %s for product %s: %d -> %d", payload.type, product.id, before, after)
        return StockAdjustResult(before_count=before, after_count=after, alert_created=alert_type)

    async def _maybe_raise_alert(self, product: Product, after: int) -> Optional[str]:
        current = stock_status(after, product.safety_stock)
        if current == "normal":
            return None
        if await self.alerts.find_open(product.id, current) is not None:
            return None
        await self.alerts.add(self.alerts.build({"product_id": product.id, "alert_type": current}))
        return current

    async def list_transactions(self, product_id: Optional[UUID] = None, limit: int = 100, offset: int = 0):
        return await self.transactions.find_all(filters={"product_id": product_id}, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def list_alerts(
        self, *, unacknowledged_only: bool = False, product_id: Optional[UUID] = None
    ) -> List[InventoryAlertRead]:
        """Alerts newest first, each with a summary of its product."""
        rows = await self.alerts.list_alerts(unacknowledged_only=unacknowledged_only, product_id=product_id)
        result = []
        for alert, product in rows:
            item = InventoryAlertRead.model_validate(alert)
            if product is not None:
                item.product = ProductSummary.model_validate(product)
            result.append(item)
        return result

    # PUBLIC_INTERFACE
    async def acknowledge(self, alert_id: Optional[UUID] = None, acknowledge_all: bool = False) -> int:
        """Acknowledge one alert or all open alerts; returns how many were acknowledged."""
        if acknowledge_all:
            return await self.alerts.acknowledge_all()
        if alert_id is None:
            raise BadRequestError("alert_id or acknowledge_all is required")
        alert: InventoryAlert = await self.alerts.update(alert_id, {"acknowledged": True})
        return 1 if alert.acknowledged else 0

    async def delete_alert(self, alert_id: UUID) -> None:
        await self.alerts.delete(alert_id)

    # PUBLIC_INTERFACE
    async def expiry_report(self, days: int = EXPIRY_WARNING_DAYS, product_id: Optional[UUID] = None) -> ExpiryReport:
        """
        Batches with expiry metadata.

        Without product_id only batches expiring within `days` (including already
        expired ones) are returned. Ordering: expired first, then expiring soon,
        then by days remaining.
        """
        today = date.today()
        horizon = None if product_id is not None else today + timedelta(days=days)
        rows = await self.batches.list_batches(product_id=product_id, expiring_before=horizon)

        batches: List[ProductBatchRead] = []
        for batch, product_name in rows:
            batches.append(batch_with_expiry(batch, product_name, today, days))

        batches.sort(key=lambda b: (not b.is_expired, not b.is_expiring_soon, b.days_until_expiry))
        return ExpiryReport(
            batches=batches,
            summary=ExpirySummary(
                total=len(batches),
                expired=sum(1 for b in batches if b.is_expired),
                expiring_soon=sum(1 for b in batches if b.is_expiring_soon),
                days=days,
            ),
        )

    # PUBLIC_INTERFACE
    async def create_batch(self, payload: ProductBatchCreate, days: int = EXPIRY_WARNING_DAYS) -> ProductBatchRead:
        """Register a batch; the response carries the same expiry flags as the expiry report."""
        product = await self.products.find_by_id(payload.product_id)
        batch: ProductBatch = await self.batches.create(payload.model_dump())
        return batch_with_expiry(batch, product.name, date.today(), days)
