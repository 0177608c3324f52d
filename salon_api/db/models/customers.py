from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from salon_api.db.base import Base, Money, OwnerMixin, TimestampMixin, UUIDPkMixin


class Customer(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Salon customer record."""
    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    features: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PointsLedger(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Signed loyalty point movement for a customer; the balance is the sum of deltas."""
    __tablename__ = "points_ledger"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class CustomerProduct(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Quantity of a product a customer holds at the salon (prepaid/kept items)."""
    __tablename__ = "customer_products"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class CustomerProductLedger(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """History of quantity changes on a customer holding."""
    __tablename__ = "customer_product_ledger"

    customer_product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customer_products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Voucher(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Prepaid voucher with a remaining balance."""
    __tablename__ = "vouchers"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    total_amount: Mapped[float] = mapped_column(Money, nullable=False)
    remaining_amount: Mapped[float] = mapped_column(Money, nullable=False)
    expires_at: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class VoucherUse(UUIDPkMixin, OwnerMixin, TimestampMixin, Base):
    """Single redemption against a voucher."""
    __tablename__ = "voucher_uses"

    voucher_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True
    )
