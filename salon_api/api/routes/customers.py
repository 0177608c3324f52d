from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import cached, revalidate_after_delete, revalidate_resource_cache
from salon_api.core.deps import get_audit_service, get_owner_id
from salon_api.db.session import get_async_session
from salon_api.repositories.customers import CustomerRepository
from salon_api.schemas.customers import (
    CustomerCreate,
    CustomerEvents,
    CustomerRead,
    CustomerStats,
    CustomerUpdate,
    HoldingCreate,
    HoldingLedgerCreate,
    HoldingLedgerRead,
    HoldingRead,
    HoldingUpdate,
    PointsBalance,
    PointsEntryCreate,
    PointsLedgerRead,
    PointsReport,
    VoucherCreate,
    VoucherRead,
    VoucherUseCreate,
    VoucherUseRead,
    VoucherUseResult,
)
from salon_api.services.audit import AuditService, snapshot
from salon_api.services.customers import CustomerService, HoldingService, PointsService, VoucherService

router = APIRouter(tags=["Customers"])

RESOURCE = "customers"


# PUBLIC_INTERFACE
@router.get(
    "/customers",
    response_model=List[CustomerRead],
    summary="List customers",
    description="List the owner's customers with optional search over name, phone and email.",
)
async def list_customers(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    search: Optional[str] = Query(None, description="Case-insensitive match on name, phone or email"),
    limit: int = Query(50, ge=1, le=1000, description="Max records"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    order_by: str = Query("created_at", description="Column to order by"),
    ascending: bool = Query(False, description="Ascending order"),
):
    """Return owner-scoped customers."""

    async def fetch():
        repo = CustomerRepository(session, owner_id)
        rows = await repo.find_all(limit=limit, offset=offset, search=search, order_by=order_by, ascending=ascending)
        return [CustomerRead.model_validate(r).model_dump(mode="json") for r in rows]

    return await cached(RESOURCE, owner_id, fetch, search, limit, offset, order_by, ascending)


# PUBLIC_INTERFACE
@router.post(
    "/customers",
    response_model=CustomerRead,
    status_code=201,
    summary="Create customer",
)
async def create_customer(
    payload: CustomerCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> CustomerRead:
    """Create a customer owned by the caller."""
    customer = await CustomerRepository(session, owner_id).create(payload.model_dump())
    await revalidate_resource_cache(RESOURCE, owner_id)
    result = CustomerRead.model_validate(customer)
    await audit.record("create", RESOURCE, customer.id, new=customer)
    return result


# PUBLIC_INTERFACE
@router.get("/customers/{customer_id}", response_model=CustomerRead, summary="Get customer")
async def get_customer(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> CustomerRead:
    """Return one customer; 404 when missing or owned by someone else."""
    return CustomerRead.model_validate(await CustomerRepository(session, owner_id).find_by_id(customer_id))


# PUBLIC_INTERFACE
@router.put(
    "/customers/{customer_id}",
    response_model=CustomerRead,
    summary="Update customer",
    description="Change only the provided fields.",
)
async def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> CustomerRead:
    repo = CustomerRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(customer_id))
    customer = await repo.update(customer_id, payload.model_dump(exclude_unset=True))
    await revalidate_resource_cache(RESOURCE, owner_id)
    result = CustomerRead.model_validate(customer)
    await audit.record("update", RESOURCE, customer_id, old=before, new=customer)
    return result


# PUBLIC_INTERFACE
@router.delete("/customers/{customer_id}", status_code=204, summary="Delete customer")
async def delete_customer(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = CustomerRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(customer_id))
    await repo.delete(customer_id)
    await revalidate_after_delete(RESOURCE, owner_id)
    await audit.record("delete", RESOURCE, customer_id, old=before)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/stats",
    response_model=CustomerStats,
    summary="Customer statistics",
    description="Lifetime value, visit counts, first/last visit and revenue per month.",
)
async def customer_stats(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> CustomerStats:
    return await CustomerService(session, owner_id).stats(customer_id)


# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/timeline",
    response_model=CustomerEvents,
    summary="Customer timeline",
    description="Appointments, transactions, point movements and product holdings of a customer, newest first.",
)
async def customer_timeline(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    limit: int = Query(200, ge=1, le=2000),
) -> CustomerEvents:
    return await CustomerService(session, owner_id).timeline(customer_id, limit=limit)


# Points

# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/points",
    response_model=PointsBalance,
    summary="Points balance",
    description="Balance over all entries; with_ledger adds a page of entries limited to [from, to).",
)
async def get_points(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    with_ledger: bool = Query(False),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> PointsBalance:
    balance, entries = await PointsService(session, owner_id).get_balance(
        customer_id,
        with_ledger=with_ledger,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    ledger = [PointsLedgerRead.model_validate(e) for e in entries] if entries is not None else None
    return PointsBalance(balance=balance, ledger=ledger)


# PUBLIC_INTERFACE
@router.post(
    "/customers/{customer_id}/points",
    response_model=PointsBalance,
    status_code=201,
    summary="Add or deduct points",
)
async def add_points(
    customer_id: UUID,
    payload: PointsEntryCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> PointsBalance:
    balance = await PointsService(session, owner_id).add_entry(customer_id, payload.delta, payload.reason)
    return PointsBalance(balance=balance)


# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/points/ledger",
    response_model=List[PointsLedgerRead],
    summary="Points ledger",
)
async def points_ledger(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[PointsLedgerRead]:
    entries = await PointsService(session, owner_id).list_entries(
        customer_id, date_from=date_from, date_to=date_to, limit=limit, offset=offset
    )
    return [PointsLedgerRead.model_validate(e) for e in entries]


# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/points/report",
    response_model=PointsReport,
    summary="Points report",
    description="Additions, deductions and per-reason totals within [from, to).",
)
async def points_report(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
) -> PointsReport:
    return await PointsService(session, owner_id).report(customer_id, date_from, date_to)


# Holdings

def _holding_read(holding, product_name: Optional[str]) -> HoldingRead:
    item = HoldingRead.model_validate(holding)
    item.product_name = product_name
    return item


# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/holdings",
    response_model=List[HoldingRead],
    summary="List product holdings",
    description="Products kept for the customer, oldest first.",
)
async def list_holdings(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> List[HoldingRead]:
    rows = await HoldingService(session, owner_id).list_holdings(customer_id)
    return [_holding_read(h, name) for h, name in rows]


# PUBLIC_INTERFACE
@router.post(
    "/customers/{customer_id}/holdings",
    response_model=HoldingRead,
    status_code=201,
    summary="Add product holding",
)
async def create_holding(
    customer_id: UUID,
    payload: HoldingCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> HoldingRead:
    holding, product_name = await HoldingService(session, owner_id).create_holding(customer_id, payload)
    return _holding_read(holding, product_name)


# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/holdings/ledger",
    response_model=List[HoldingLedgerRead],
    summary="Holding ledger for a customer",
)
async def customer_holdings_ledger(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> List[HoldingLedgerRead]:
    rows = await HoldingService(session, owner_id).ledger_for_customer(customer_id)
    result = []
    for entry, product_name in rows:
        item = HoldingLedgerRead.model_validate(entry)
        item.product_name = product_name
        result.append(item)
    return result


# PUBLIC_INTERFACE
@router.patch(
    "/holdings/{holding_id}",
    response_model=HoldingRead,
    summary="Update product holding",
    description="Quantity changes are written to the holding ledger unless no_ledger is set.",
)
async def update_holding(
    holding_id: UUID,
    payload: HoldingUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> HoldingRead:
    holding = await HoldingService(session, owner_id).update_holding(holding_id, payload)
    return HoldingRead.model_validate(holding)


# PUBLIC_INTERFACE
@router.delete("/holdings/{holding_id}", status_code=204, summary="Delete product holding")
async def delete_holding(
    holding_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await HoldingService(session, owner_id).holdings.delete(holding_id)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.get(
    "/holdings/{holding_id}/ledger",
    response_model=List[HoldingLedgerRead],
    summary="Holding ledger",
)
async def holding_ledger(
    holding_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> List[HoldingLedgerRead]:
    entries = await HoldingService(session, owner_id).ledger_for_holding(holding_id)
    return [HoldingLedgerRead.model_validate(e) for e in entries]


# PUBLIC_INTERFACE
@router.post(
    "/holdings/{holding_id}/ledger",
    response_model=HoldingLedgerRead,
    status_code=201,
    summary="Record holding movement",
)
async def add_holding_ledger_entry(
    holding_id: UUID,
    payload: HoldingLedgerCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> HoldingLedgerRead:
    entry = await HoldingService(session, owner_id).add_ledger_entry(holding_id, payload)
    return HoldingLedgerRead.model_validate(entry)


# Vouchers

# PUBLIC_INTERFACE
@router.get(
    "/customers/{customer_id}/vouchers",
    response_model=List[VoucherRead],
    summary="List vouchers",
    description="Vouchers issued to the customer, newest first.",
)
async def list_vouchers(
    customer_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> List[VoucherRead]:
    vouchers = await VoucherService(session, owner_id).list_vouchers(customer_id)
    return [VoucherRead.model_validate(v) for v in vouchers]


# PUBLIC_INTERFACE
@router.post(
    "/customers/{customer_id}/vouchers",
    response_model=VoucherRead,
    status_code=201,
    summary="Issue voucher",
)
async def issue_voucher(
    customer_id: UUID,
    payload: VoucherCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> VoucherRead:
    voucher = await VoucherService(session, owner_id).issue(customer_id, payload)
    return VoucherRead.model_validate(voucher)


# PUBLIC_INTERFACE
@router.post(
    "/vouchers/{voucher_id}/use",
    response_model=VoucherUseResult,
    summary="Use voucher",
    description="Redeem an amount; 400 when the voucher is expired or its balance is insufficient.",
)
async def use_voucher(
    voucher_id: UUID,
    payload: VoucherUseCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> VoucherUseResult:
    voucher, use = await VoucherService(session, owner_id).use(voucher_id, payload)
    return VoucherUseResult(remaining_amount=voucher.remaining_amount, use=VoucherUseRead.model_validate(use))


# PUBLIC_INTERFACE
@router.get(
    "/vouchers/{voucher_id}/uses",
    response_model=List[VoucherUseRead],
    summary="Voucher redemptions",
)
async def list_voucher_uses(
    voucher_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> List[VoucherUseRead]:
    uses = await VoucherService(session, owner_id).list_uses(voucher_id)
    return [VoucherUseRead.model_validate(u) for u in uses]
