from __future__ import annotations

from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import revalidate_resource_cache
from salon_api.core.deps import get_owner_id
from salon_api.db.session import get_async_session
from salon_api.schemas.common import MessageResponse
from salon_api.schemas.inventory import (
    AlertAcknowledgeRequest,
    ExpiryReport,
    InventoryAlertRead,
    InventoryItem,
    InventoryTransactionRead,
    ProductBatchCreate,
    ProductBatchRead,
    StockAdjustRequest,
    StockAdjustResult,
)
from salon_api.services.inventory import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[InventoryItem],
    summary="Inventory overview",
    description="Products with their stock status (out_of_stock, low_stock, normal) ordered by name.",
)
async def list_inventory(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    search: Optional[str] = Query(None),
    status: Optional[Literal["out_of_stock", "low_stock", "normal"]] = Query(None, description="Filter by stock status"),
) -> List[InventoryItem]:
    return await InventoryService(session, owner_id).list_inventory(search=search, status=status)


# PUBLIC_INTERFACE
@router.patch(
    "",
    response_model=StockAdjustResult,
    summary="Adjust stock",
    description=(
        "Apply a stock movement: adjustment sets the count, purchase adds, sale subtracts. "
        "Logs an inventory transaction and raises a low/out-of-stock alert when needed."
    ),
)
async def adjust_stock(
    payload: StockAdjustRequest,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> StockAdjustResult:
    result = await InventoryService(session, owner_id).adjust_stock(payload)
    await revalidate_resource_cache("products", owner_id)
    return result


# PUBLIC_INTERFACE
@router.get(
    "/transactions",
    response_model=List[InventoryTransactionRead],
    summary="List inventory transactions",
    description="Stock movements ordered by created_at desc.",
)
async def list_inventory_transactions(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    product_id: Optional[UUID] = Query(None, description="Filter by product"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[InventoryTransactionRead]:
    rows = await InventoryService(session, owner_id).list_transactions(product_id, limit=limit, offset=offset)
    return [InventoryTransactionRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.get(
    "/alerts",
    response_model=List[InventoryAlertRead],
    summary="List stock alerts",
)
async def list_alerts(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    unacknowledged: bool = Query(False, description="Only open alerts"),
    product_id: Optional[UUID] = Query(None),
) -> List[InventoryAlertRead]:
    return await InventoryService(session, owner_id).list_alerts(
        unacknowledged_only=unacknowledged, product_id=product_id
    )


# PUBLIC_INTERFACE
@router.patch(
    "/alerts",
    response_model=MessageResponse,
    summary="Acknowledge alerts",
    description="Acknowledge one alert by id, or every open alert with acknowledge_all.",
)
async def acknowledge_alerts(
    payload: AlertAcknowledgeRequest,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    count = await InventoryService(session, owner_id).acknowledge(payload.alert_id, payload.acknowledge_all)
    return MessageResponse(message="Alerts acknowledged", details={"count": count})


# PUBLIC_INTERFACE
@router.delete("/alerts/{alert_id}", status_code=204, summary="Delete stock alert")
async def delete_alert(
    alert_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await InventoryService(session, owner_id).delete_alert(alert_id)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.get(
    "/expiry",
    response_model=ExpiryReport,
    summary="Batch expiry report",
    description=(
        "Product batches with days until expiry. Without product_id only batches expiring "
        "within `days` (including expired ones) are returned."
    ),
)
async def expiry_report(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    days: int = Query(30, ge=0, le=3650),
    product_id: Optional[UUID] = Query(None),
) -> ExpiryReport:
    return await InventoryService(session, owner_id).expiry_report(days=days, product_id=product_id)


# PUBLIC_INTERFACE
@router.post(
    "/expiry",
    response_model=ProductBatchRead,
    status_code=201,
    summary="Register product batch",
)
async def create_batch(
    payload: ProductBatchCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> ProductBatchRead:
    return await InventoryService(session, owner_id).create_batch(payload)
