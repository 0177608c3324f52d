from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import cached, revalidate_resource_cache
from salon_api.core.deps import get_audit_service, get_owner_id
from salon_api.core.errors import BadRequestError
from salon_api.db.session import get_async_session
from salon_api.repositories.staff import AttendanceRepository, StaffRepository
from salon_api.schemas.staff import (
    AttendanceCreate,
    AttendanceRead,
    AttendanceUpdate,
    ScheduleBatchRequest,
    ScheduleBatchResult,
    StaffCreate,
    StaffPerformance,
    StaffRead,
    StaffUpdate,
)
from salon_api.services.audit import AuditService, snapshot
from salon_api.services.staff import ScheduleService, StaffPerformanceService

router = APIRouter(prefix="/staff", tags=["Staff"])

RESOURCE = "staff"


# Attendance routes are registered before /{staff_id} so the literal paths win.

# PUBLIC_INTERFACE
@router.get(
    "/attendance",
    response_model=List[AttendanceRead],
    summary="List attendance",
    description="Scheduled and actual working periods starting in [from, to), ordered by start time.",
)
async def list_attendance(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    staff_id: Optional[UUID] = Query(None),
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    type_: Optional[Literal["scheduled", "actual"]] = Query(None, alias="type"),
    limit: int = Query(500, ge=1, le=5000),
    offset: int = Query(0, ge=0),
) -> List[AttendanceRead]:
    rows = await AttendanceRepository(session, owner_id).list_attendance(
        staff_id=staff_id, start=start, end=end, type_=type_, limit=limit, offset=offset
    )
    return [AttendanceRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post("/attendance", response_model=AttendanceRead, status_code=201, summary="Create attendance record")
async def create_attendance(
    payload: AttendanceCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> AttendanceRead:
    await StaffRepository(session, owner_id).find_by_id(payload.staff_id)
    record = await AttendanceRepository(session, owner_id).create(payload.model_dump())
    return AttendanceRead.model_validate(record)


# PUBLIC_INTERFACE
@router.put("/attendance/{attendance_id}", response_model=AttendanceRead, summary="Update attendance record")
async def update_attendance(
    attendance_id: UUID,
    payload: AttendanceUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> AttendanceRead:
    """Change only the provided fields; the resulting end time must not precede the start time."""
    repo = AttendanceRepository(session, owner_id)
    current = await repo.find_by_id(attendance_id)
    values = payload.model_dump(exclude_unset=True)
    start = values.get("start_time", current.start_time)
    end = values.get("end_time", current.end_time)
    if start is not None and end is not None and end < start:
        raise BadRequestError("end_time must not be before start_time")
    record = await repo.update(attendance_id, values)
    return AttendanceRead.model_validate(record)


# PUBLIC_INTERFACE
@router.delete("/attendance/{attendance_id}", status_code=204, summary="Delete attendance record")
async def delete_attendance(
    attendance_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await AttendanceRepository(session, owner_id).delete(attendance_id)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.post(
    "/schedule/batch",
    response_model=ScheduleBatchResult,
    status_code=201,
    summary="Create weekly schedule",
    description=(
        "Expand a weekly template over repeat_weeks weeks starting at the Monday of start_date's week. "
        "Existing scheduled records of the staff member in that range are replaced."
    ),
)
async def create_schedule_batch(
    payload: ScheduleBatchRequest,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> ScheduleBatchResult:
    created, replaced = await ScheduleService(session, owner_id).create_batch(payload)
    return ScheduleBatchResult(count=created, replaced=replaced)


# Staff members

# PUBLIC_INTERFACE
@router.get("", response_model=List[StaffRead], summary="List staff")
async def list_staff(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    search: Optional[str] = Query(None, description="Match on name, email, phone or role"),
    active: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    order_by: str = Query("created_at"),
    ascending: bool = Query(False),
):
    async def fetch():
        rows = await StaffRepository(session, owner_id).find_all(
            limit=limit,
            offset=offset,
            search=search,
            order_by=order_by,
            ascending=ascending,
            filters={"active": active},
        )
        return [StaffRead.model_validate(r).model_dump(mode="json") for r in rows]

    return await cached(RESOURCE, owner_id, fetch, search, active, limit, offset, order_by, ascending)


# PUBLIC_INTERFACE
@router.post("", response_model=StaffRead, status_code=201, summary="Create staff member")
async def create_staff(
    payload: StaffCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> StaffRead:
    staff = await StaffRepository(session, owner_id).create(payload.model_dump())
    await revalidate_resource_cache(RESOURCE, owner_id)
    result = StaffRead.model_validate(staff)
    await audit.record("create", RESOURCE, staff.id, new=staff)
    return result


# PUBLIC_INTERFACE
@router.get("/{staff_id}", response_model=StaffRead, summary="Get staff member")
async def get_staff(
    staff_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> StaffRead:
    return StaffRead.model_validate(await StaffRepository(session, owner_id).find_by_id(staff_id))


# PUBLIC_INTERFACE
@router.get(
    "/{staff_id}/performance",
    response_model=StaffPerformance,
    summary="Staff performance",
    description=(
        "Appointments, completed count, linked revenue, worked hours, incentive preview "
        "and a per-month trend over the last `months` months."
    ),
)
async def staff_performance(
    staff_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    months: int = Query(3, ge=1, le=36),
) -> StaffPerformance:
    return await StaffPerformanceService(session, owner_id).performance(staff_id, months=months)


# PUBLIC_INTERFACE
@router.put("/{staff_id}", response_model=StaffRead, summary="Update staff member")
async def update_staff(
    staff_id: UUID,
    payload: StaffUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> StaffRead:
    repo = StaffRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(staff_id))
    staff = await repo.update(staff_id, payload.model_dump(exclude_unset=True))
    await revalidate_resource_cache(RESOURCE, owner_id)
    result = StaffRead.model_validate(staff)
    await audit.record("update", RESOURCE, staff_id, old=before, new=staff)
    return result


# PUBLIC_INTERFACE
@router.delete("/{staff_id}", status_code=204, summary="Delete staff member")
async def delete_staff(
    staff_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    repo = StaffRepository(session, owner_id)
    before = snapshot(await repo.find_by_id(staff_id))
    await repo.delete(staff_id)
    await revalidate_resource_cache(RESOURCE, owner_id)
    await audit.record("delete", RESOURCE, staff_id, old=before)
    return Response(status_code=204)
