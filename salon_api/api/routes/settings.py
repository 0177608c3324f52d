from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.cache import cached, revalidate_resource_cache
from salon_api.core.deps import get_audit_service, get_owner_id
from salon_api.db.session import get_async_session
from salon_api.schemas.system import SettingsDocument, SettingsUpdate
from salon_api.services.audit import AuditService
from salon_api.services.settings import SettingsService

router = APIRouter(prefix="/settings", tags=["Settings"])

RESOURCE = "settings"


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=SettingsDocument,
    summary="Read settings",
    description="The owner's settings document, or the defaults when nothing has been saved.",
)
async def read_settings(
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
):
    async def fetch():
        return (await SettingsService(session, owner_id).get()).model_dump(mode="json")

    return await cached(RESOURCE, owner_id, fetch)


# PUBLIC_INTERFACE
@router.put(
    "",
    response_model=SettingsDocument,
    summary="Update settings",
    description="Each provided section is merged over the stored one; omitted sections are unchanged.",
)
async def update_settings(
    payload: SettingsUpdate,
    owner_id: UUID = Depends(get_owner_id),
    session: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> SettingsDocument:
    previous, updated = await SettingsService(session, owner_id).update(payload)
    await revalidate_resource_cache(RESOURCE, owner_id)
    await audit.record(
        "update",
        RESOURCE,
        owner_id,
        old=previous.model_dump(mode="json"),
        new=updated.model_dump(mode="json"),
    )
    return updated
