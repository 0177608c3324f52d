from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.deps import get_current_active_user
from salon_api.db.models.security import User
from salon_api.db.session import get_async_session
from salon_api.repositories.system import AuditLogRepository
from salon_api.schemas.system import AuditLogRead

router = APIRouter(prefix="/audit", tags=["Audit"])


# PUBLIC_INTERFACE
@router.get(
    "/logs",
    response_model=List[AuditLogRead],
    summary="List audit logs",
    description="The caller's audit trail, newest first.",
)
async def list_audit_logs(
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_async_session),
    action_type: Optional[Literal["create", "update", "delete"]] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[AuditLogRead]:
    rows = await AuditLogRepository(session, user.id).list_logs(
        action_type=action_type,
        resource_type=resource_type,
        resource_id=resource_id,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
    return [AuditLogRead.model_validate(r) for r in rows]
