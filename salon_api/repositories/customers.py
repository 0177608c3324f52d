from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from salon_api.db.models.customers import (
    Customer,
    CustomerProduct,
    CustomerProductLedger,
    PointsLedger,
    Voucher,
    VoucherUse,
)
from salon_api.db.models.inventory import Product
from .base import OwnedRepository


class CustomerRepository(OwnedRepository[Customer]):
    """Owner-scoped access to customers."""

    model = Customer
    search_fields = ("name", "phone", "email")


class PointsLedgerRepository(OwnedRepository[PointsLedger]):
    """Loyalty point movements; balances are sums over the ledger."""

    model = PointsLedger

    def _for_customer(self, customer_id: UUID, date_from: Optional[datetime], date_to: Optional[datetime]):
        stmt = self.scoped().where(PointsLedger.customer_id == customer_id)
        if date_from is not None:
            stmt = stmt.where(PointsLedger.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(PointsLedger.created_at < date_to)
        return stmt

    async def balance(self, customer_id: UUID) -> int:
        stmt = select(func.coalesce(func.sum(PointsLedger.delta), 0)).where(
            PointsLedger.owner_id == self.owner_id, PointsLedger.customer_id == customer_id
        )
        return int(await self.scalar(stmt) or 0)

    async def list_entries(
        self,
        customer_id: UUID,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[PointsLedger]:
        """Ledger rows newest first, restricted to [date_from, date_to)."""
        stmt = self._for_customer(customer_id, date_from, date_to).order_by(PointsLedger.created_at.desc())
        stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        res = await self.scalars(stmt)
        return list(res)


class CustomerProductRepository(OwnedRepository[CustomerProduct]):
    """Products held by customers."""

    model = CustomerProduct
    default_order_by = "created_at"
    default_ascending = True

    async def list_with_product(self, customer_id: UUID) -> List[Tuple[CustomerProduct, Optional[str]]]:
        stmt = (
            select(CustomerProduct, Product.name)
            .outerjoin(Product, Product.id == CustomerProduct.product_id)
            .where(CustomerProduct.owner_id == self.owner_id, CustomerProduct.customer_id == customer_id)
            .order_by(CustomerProduct.created_at.asc())
        )
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]


class CustomerProductLedgerRepository(OwnedRepository[CustomerProductLedger]):
    """Quantity history of customer holdings."""

    model = CustomerProductLedger

    async def list_for_holding(self, holding_id: UUID) -> List[CustomerProductLedger]:
        stmt = (
            self.scoped()
            .where(CustomerProductLedger.customer_product_id == holding_id)
            .order_by(CustomerProductLedger.created_at.desc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_for_customer(self, customer_id: UUID) -> List[Tuple[CustomerProductLedger, Optional[str]]]:
        stmt = (
            select(CustomerProductLedger, Product.name)
            .join(CustomerProduct, CustomerProduct.id == CustomerProductLedger.customer_product_id)
            .outerjoin(Product, Product.id == CustomerProduct.product_id)
            .where(
                CustomerProductLedger.owner_id == self.owner_id,
                CustomerProduct.customer_id == customer_id,
            )
            .order_by(CustomerProductLedger.created_at.desc())
        )
        res = await self.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]


class VoucherRepository(OwnedRepository[Voucher]):
    """Prepaid vouchers."""

    model = Voucher
    search_fields = ("name",)


class VoucherUseRepository(OwnedRepository[VoucherUse]):
    """Voucher redemptions."""

    model = VoucherUse

    async def list_for_voucher(self, voucher_id: UUID) -> List[VoucherUse]:
        stmt = self.scoped().where(VoucherUse.voucher_id == voucher_id).order_by(VoucherUse.created_at.desc())
        res = await self.scalars(stmt)
        return list(res)
