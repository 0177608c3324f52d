from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import cached, revalidate_resource_cache
from salon_api.core.deps import get_audit_service, get_owner_id
from salon_api.db.session import get_async_session
from salon_api.repositories.inventory import ProductRepository
from salon_api.schemas.inventory import ProductCreate, ProductRead, ProductUpdate
from salon_api.services.audit import AuditService, snapshot

router = APIRouter(prefix="/products", tags=["Products"])

RESOURCE = "products"


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ProductRead],
    summary="List products",
    description="List the owner's products and services. Responses are cached per owner and query.",
)
async def list_products(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    search: Optional[str] = Query(None, description="Case-insensitive match on name or description"),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    order_by: str = Query("created_at"),
    ascending: bool = Query(False),
):
    """Return owner-scoped products."""

    async def fetch():
        rows = await ProductRepository(session, owner_id).find_all(
            limit=limit,
            offset=offset,
            search=search,
            order_by=order_by,
            ascending=ascending,
            filters={"active": active},
        )
        return [ProductRead.model_validate(r).model_dump(mode="json") for r in rows]

    return await cached(RESOURCE, owner_id, fetch, search, active, limit, offset, order_by, ascending)


# PUBLIC_INTERFACE
@router.post("", response_model=ProductRead, status_code=201, summary="Create product")
async def create_product(
    payload: ProductCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> ProductRead:
    product = await ProductRepository(session, owner_id).create(payload.model_dump())
    await revalidate_resource_cache(RESOURCE, owner_id)
    result = ProductRead.model_validate(product)
    await audit.record("create", RESOURCE, product.id, new=product)
    return result


# PUBLIC_INTERFACE
@router.get("/{product_id}", response_model=ProductRead, summary="Get product")
async def get_product(
    product_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> ProductRead:
    return ProductRead.model_validate(await ProductRepository(session, owner_id).find_by_id(product_id))


# PUBLIC_INTERFACE
@router.put("/{product_id}", response_model=ProductRead, summary="Update product")
async def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> ProductRead:
    """Change only the provided fields."""
    repo = ProductRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(product_id))
    product = await repo.update(product_id, payload.model_dump(exclude_unset=True))
    await revalidate_resource_cache(RESOURCE, owner_id)
    result = ProductRead.model_validate(product)
    await audit.record("update", RESOURCE, product_id, old=before, new=product)
    return result


# PUBLIC_INTERFACE
@router.delete("/{product_id}", status_code=204, summary="Delete product")
async def delete_product(
    product_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = ProductRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(product_id))
    await repo.delete(product_id)
    await revalidate_resource_cache(RESOURCE, owner_id)
    await audit.record("delete", RESOURCE, product_id, old=before)
    return Response(status_code=204)
