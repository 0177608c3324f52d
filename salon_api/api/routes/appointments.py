from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import revalidate_after_delete
from salon_api.core.deps import get_audit_service, get_owner_id
from salon_api.db.session import get_async_session
from salon_api.schemas.scheduling import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatus,
    AppointmentUpdate,
    RecurringAppointmentRequest,
    RecurringAppointmentResult,
)
from salon_api.services.audit import AuditService, snapshot
from salon_api.services.scheduling import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])

RESOURCE = "appointments"


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[AppointmentRead],
    summary="List appointments",
    description="Appointments with appointment_date in [from, to), ordered by date ascending. Not cached.",
)
async def list_appointments(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    start: Optional[datetime] = Query(None, alias="from", description="Inclusive lower bound"),
    end: Optional[datetime] = Query(None, alias="to", description="Exclusive upper bound"),
    status: Optional[AppointmentStatus] = Query(None),
    staff_id: Optional[UUID] = Query(None),
    customer_id: Optional[UUID] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[AppointmentRead]:
    rows = await AppointmentService(session, owner_id).list_appointments(
        start=start,
        end=end,
        status=status,
        staff_id=staff_id,
        customer_id=customer_id,
        limit=limit,
        offset=offset,
    )
    return [AppointmentRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/recurring",
    response_model=RecurringAppointmentResult,
    status_code=201,
    summary="Create recurring appointments",
    description=(
        "Book the same time on the given weekdays (0=Sunday .. 6=Saturday) for repeat_weeks weeks, "
        "starting with the Monday-aligned week of start_date. Dates before start_date are skipped."
    ),
)
async def create_recurring_appointments(
    payload: RecurringAppointmentRequest,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> RecurringAppointmentResult:
    recurring_id, rows = await AppointmentService(session, owner_id).create_recurring(payload)
    result = RecurringAppointmentResult(
        recurring_id=recurring_id,
        count=len(rows),
        appointments=[AppointmentRead.model_validate(r) for r in rows],
    )
    await audit.record(
        "create",
        RESOURCE,
        recurring_id,
        new={"recurring_id": str(recurring_id), "count": len(rows)},
        description=f"create {len(rows)} recurring appointments",
    )
    return result


# PUBLIC_INTERFACE
@router.delete(
    "/recurring/{recurring_id}",
    response_model=Dict[str, int],
    summary="Delete recurring series",
    description="Delete every appointment sharing the recurring_id.",
)
async def delete_recurring_appointments(
    recurring_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Dict[str, int]:
    deleted = await AppointmentService(session, owner_id).delete_recurring(recurring_id)
    await revalidate_after_delete(RESOURCE, owner_id)
    await audit.record(
        "delete",
        RESOURCE,
        recurring_id,
        old={"recurring_id": str(recurring_id), "count": deleted},
        description=f"delete {deleted} recurring appointments",
    )
    return {"deleted": deleted}


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=AppointmentRead,
    status_code=201,
    summary="Create appointment",
    description="Customer, staff and service must belong to the caller (404 otherwise).",
)
async def create_appointment(
    payload: AppointmentCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> AppointmentRead:
    appointment = await AppointmentService(session, owner_id).create(payload)
    result = AppointmentRead.model_validate(appointment)
    await audit.record("create", RESOURCE, appointment.id, new=appointment)
    return result


# PUBLIC_INTERFACE
@router.get("/{appointment_id}", response_model=AppointmentRead, summary="Get appointment")
async def get_appointment(
    appointment_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> AppointmentRead:
    service = AppointmentService(session, owner_id)
    return AppointmentRead.model_validate(await service.appointments.find_by_id(appointment_id))


# PUBLIC_INTERFACE
@router.put("/{appointment_id}", response_model=AppointmentRead, summary="Update appointment")
async def update_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> AppointmentRead:
    before, appointment = await AppointmentService(session, owner_id).update(appointment_id, payload)
    result = AppointmentRead.model_validate(appointment)
    await audit.record("update", RESOURCE, appointment_id, old=before, new=appointment)
    return result


# PUBLIC_INTERFACE
@router.delete("/{appointment_id}", status_code=204, summary="Delete appointment")
async def delete_appointment(
    appointment_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = AppointmentService(session, owner_id).appointments
    before = snapshot(await repo.find_by_id(appointment_id))
    await repo.delete(appointment_id)
    await revalidate_after_delete(RESOURCE, owner_id)
    await audit.record("delete", RESOURCE, appointment_id, old=before)
    return Response(status_code=204)
