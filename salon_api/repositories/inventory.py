from __future__ import annotations

from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update

from salon_api.db.models.inventory import InventoryAlert, InventoryTransaction, Product, ProductBatch
from .base import OwnedRepository


class ProductRepository(OwnedRepository[Product]):
    """Owner-scoped access to products (also used as services for appointments)."""

    model = Product
    search_fields = ("name", "description")

    async def list_by_ids(self, ids: List[UUID]) -> List[Product]:
        if not ids:
            return []
        res = await self.scalars(self.scoped().where(Product.id.in_(ids)))
        return list(res)


class InventoryTransactionRepository(OwnedRepository[InventoryTransaction]):
    """Stock movement log."""

    model = InventoryTransaction


class InventoryAlertRepository(OwnedRepository[InventoryAlert]):
    """Low/zero stock alerts."""

    model = InventoryAlert

    async def list_alerts(
        self, *, unacknowledged_only: bool = False, product_id: Optional[UUID] = None
    ) -> List[Tuple[InventoryAlert, Optional[Product]]]:
        stmt = (
            select(InventoryAlert, Product)
            .outerjoin(Product, Product.id == InventoryAlert.product_id)
            .where(InventoryAlert.owner_id == self.owner_id)
        )
        if unacknowledged_only:
            stmt = stmt.where(InventoryAlert.acknowledged.is_(False))
        if product_id is not None:
            stmt = stmt.where(InventoryAlert.product_id == product_id)
        stmt = stmt.order_by(InventoryAlert.created_at.desc())
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]

    async def find_open(self, product_id: UUID, alert_type: str) -> Optional[InventoryAlert]:
        stmt = self.scoped().where(
            InventoryAlert.product_id == product_id,
            InventoryAlert.alert_type == alert_type,
            InventoryAlert.acknowledged.is_(False),
        ).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def acknowledge_all(self) -> int:
        stmt = (
            update(InventoryAlert)
            .where(InventoryAlert.owner_id == self.owner_id, InventoryAlert.acknowledged.is_(False))
            .values(acknowledged=True)
        )
        result = await self.execute(stmt)
        await self.commit()
        return int(result.rowcount or 0)


class ProductBatchRepository(OwnedRepository[ProductBatch]):
    """Product batches with expiry dates."""

    model = ProductBatch
    default_order_by = "expiry_date"
    default_ascending = True

    async def list_batches(
        self, *, product_id: Optional[UUID] = None, expiring_before: Optional[date] = None
    ) -> List[Tuple[ProductBatch, Optional[str]]]:
        stmt = (
            select(ProductBatch, Product.name)
            .outerjoin(Product, Product.id == ProductBatch.product_id)
            .where(ProductBatch.owner_id == self.owner_id)
        )
        if product_id is not None:
            stmt = stmt.where(ProductBatch.product_id == product_id)
        if expiring_before is not None:
            stmt = stmt.where(ProductBatch.expiry_date <= expiring_before)
        stmt = stmt.order_by(ProductBatch.expiry_date.asc())
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]
