from __future__ import annotations

from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.deps import get_owner_id
from salon_api.db.session import get_async_session
from salon_api.schemas.staff import (
    MONTH_PATTERN,
    PayrollCalculateRequest,
    PayrollCalculationResult,
    PayrollRecordCreate,
    PayrollRecordRead,
    PayrollSettingsRead,
    PayrollSettingsUpdate,
    PayrollSummary,
)
from salon_api.services.staff import PayrollService

router = APIRouter(prefix="/payroll", tags=["Payroll"])


# PUBLIC_INTERFACE
@router.get(
    "/settings/{staff_id}",
    response_model=PayrollSettingsRead,
    summary="Get payroll settings",
    description="Salary basis and deduction rates (percent) for a staff member; defaults when none are stored.",
)
async def get_payroll_settings(
    staff_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> PayrollSettingsRead:
    return await PayrollService(session, owner_id).get_settings(staff_id)


# PUBLIC_INTERFACE
@router.put("/settings/{staff_id}", response_model=PayrollSettingsRead, summary="Save payroll settings")
async def put_payroll_settings(
    staff_id: UUID,
    payload: PayrollSettingsUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> PayrollSettingsRead:
    settings = await PayrollService(session, owner_id).upsert_settings(staff_id, payload)
    return PayrollSettingsRead.model_validate(settings)


# PUBLIC_INTERFACE
@router.get(
    "/records",
    response_model=List[PayrollRecordRead],
    summary="List payroll records",
    description="By staff member (latest 12 months) and/or by month, each with a staff summary.",
)
async def list_payroll_records(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    staff_id: Optional[UUID] = Query(None),
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="YYYY-MM"),
) -> List[PayrollRecordRead]:
    return await PayrollService(session, owner_id).list_records(staff_id=staff_id, month=month)


# PUBLIC_INTERFACE
@router.post(
    "/records",
    response_model=PayrollRecordRead,
    status_code=201,
    summary="Create payroll record",
    description="409 when a record already exists for the staff member and month.",
)
async def create_payroll_record(
    payload: PayrollRecordCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> PayrollRecordRead:
    record = await PayrollService(session, owner_id).create_record(payload)
    return PayrollRecordRead.model_validate(record)


# PUBLIC_INTERFACE
@router.patch(
    "/records",
    response_model=PayrollRecordRead,
    summary="Save payroll record",
    description="Insert or replace the record for (staff_id, month).",
)
async def upsert_payroll_record(
    payload: PayrollRecordCreate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> PayrollRecordRead:
    record = await PayrollService(session, owner_id).upsert_record(payload)
    return PayrollRecordRead.model_validate(record)


# PUBLIC_INTERFACE
@router.delete("/records/{record_id}", status_code=204, summary="Delete payroll record")
async def delete_payroll_record(
    record_id: UUID,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await PayrollService(session, owner_id).records.delete(record_id)
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.post(
    "/calculate",
    response_model=PayrollCalculationResult,
    summary="Calculate payroll",
    description=(
        "Compute the month's pay from attendance hours, payroll settings and sales-linked incentive, "
        "then store it as a draft record."
    ),
)
async def calculate_payroll(
    payload: PayrollCalculateRequest,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
) -> PayrollCalculationResult:
    record, details = await PayrollService(session, owner_id).calculate(payload.staff_id, payload.month)
    return PayrollCalculationResult(
        payroll_record=PayrollRecordRead.model_validate(record),
        calculation_details=details,
    )


# PUBLIC_INTERFACE
@router.get(
    "/summary",
    response_model=PayrollSummary,
    summary="Monthly payroll overview",
    description="Staff rows with record status ('not_calculated' when missing), filtered, sorted and paginated.",
)
async def payroll_summary(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    month: str = Query(..., pattern=MONTH_PATTERN, description="YYYY-MM"),
    search: Optional[str] = Query(None, description="Filter by staff name"),
    status: Optional[str] = Query(None, description="draft, confirmed, paid, not_calculated or all"),
    sort_key: str = Query("staff_name"),
    sort_dir: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
) -> PayrollSummary:
    return await PayrollService(session, owner_id).summary(
        month,
        search=search,
        status=status,
        sort_key=sort_key,
        sort_dir=sort_dir,
        page=page,
        page_size=page_size,
    )
