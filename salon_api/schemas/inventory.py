from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import blank_to_none

StockMovementType = Literal["adjustment", "purchase", "sale"]
InventoryStatus = Literal["normal", "low_stock", "out_of_stock"]


class ProductCreate(BaseModel):
    """Create product payload."""
    name: str = Field(..., min_length=1, description="Product or service name")
    price: Optional[float] = Field(None, ge=0, description="Unit price")
    description: Optional[str] = Field(None)
    active: bool = Field(True)
    stock_count: int = Field(0, ge=0, description="Units on hand")
    safety_stock: int = Field(5, ge=0, description="Threshold at or below which stock is low")

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, v):
        return blank_to_none(v)


class ProductUpdate(BaseModel):
    """Partial product update."""
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None)
    active: Optional[bool] = Field(None)
    stock_count: Optional[int] = Field(None, ge=0)
    safety_stock: Optional[int] = Field(None, ge=0)


class ProductRead(BaseModel):
    """Product read model."""
    id: UUID = Field(..., description="Product ID")
    name: str
    price: Optional[float] = None
    description: Optional[str] = None
    active: bool
    stock_count: int
    safety_stock: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductSummary(BaseModel):
    id: UUID
    name: str
    stock_count: int
    safety_stock: int

    class Config:
        from_attributes = True


class InventoryItem(ProductRead):
    """Product with its derived stock status."""
    inventory_status: InventoryStatus
    needs_restock: bool


class StockAdjustRequest(BaseModel):
    """
    Stock movement. 'adjustment' sets the absolute count, 'purchase' adds and
    'sale' subtracts quantity.
    """
    product_id: UUID
    quantity: int = Field(..., ge=0)
    type: StockMovementType = Field("adjustment")
    memo: Optional[str] = Field(None)


class StockAdjustResult(BaseModel):
    success: bool = True
    before_count: int
    after_count: int
    alert_created: Optional[str] = Field(None, description="Alert type raised by this movement, if any")


class InventoryTransactionRead(BaseModel):
    id: UUID
    product_id: UUID
    type: str
    quantity: int
    before_count: int
    after_count: int
    memo: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InventoryAlertRead(BaseModel):
    id: UUID
    product_id: UUID
    alert_type: str
    acknowledged: bool
    created_at: datetime
    product: Optional[ProductSummary] = None

    class Config:
        from_attributes = True


class AlertAcknowledgeRequest(BaseModel):
    """Acknowledge a single alert or every open alert."""
    alert_id: Optional[UUID] = None
    acknowledge_all: bool = False


class ProductBatchCreate(BaseModel):
    product_id: UUID
    batch_number: str = Field(..., min_length=1)
    quantity: int = Field(0, ge=0)
    expiry_date: date
    purchase_date: Optional[date] = None
    notes: Optional[str] = None


class ProductBatchRead(BaseModel):
    id: UUID
    product_id: UUID
    product_name: Optional[str] = None
    batch_number: str
    quantity: int
    expiry_date: date
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    days_until_expiry: int = 0
    is_expired: bool = False
    is_expiring_soon: bool = False

    class Config:
        from_attributes = True


class ExpirySummary(BaseModel):
    total: int
    expired: int
    expiring_soon: int
    days: int


class ExpiryReport(BaseModel):
    batches: List[ProductBatchRead]
    summary: ExpirySummary
