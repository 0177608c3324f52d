from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from salon_api.db.models.system import AuditLog, OwnerSettings
from .base import BaseRepository


class SettingsRepository(BaseRepository):
    """Single settings document per owner."""

    def __init__(self, session, owner_id: UUID) -> None:
        super().__init__(session)
        self.owner_id = owner_id

    async def get(self) -> Optional[OwnerSettings]:
        stmt = select(OwnerSettings).where(OwnerSettings.owner_id == self.owner_id)
        return await self.scalar_one_or_none(stmt)

    async def upsert(self, document: Dict[str, Any]) -> OwnerSettings:
        row = await self.get()
        if row is None:
            row = OwnerSettings(owner_id=self.owner_id, settings=document)
            await self.add(row)
        else:
            row.settings = document
        await self.commit()
        await self.refresh(row)
        return row


class AuditLogRepository(BaseRepository):
    """Audit trail; readable only by the user who produced the entries."""

    def __init__(self, session, user_id: UUID) -> None:
        super().__init__(session)
        self.user_id = user_id

    async def record(self, **values: Any) -> AuditLog:
        entry = AuditLog(user_id=self.user_id, **values)
        await self.add(entry)
        await self.commit()
        return entry

    async def list_logs(
        self,
        *,
        action_type: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.user_id == self.user_id)
        if action_type:
            stmt = stmt.where(AuditLog.action_type == action_type)
        if resource_type:
            stmt = stmt.where(AuditLog.resource_type == resource_type)
        if resource_id:
            stmt = stmt.where(AuditLog.resource_id == resource_id)
        if start is not None:
            stmt = stmt.where(AuditLog.created_at >= start)
        if end is not None:
            stmt = stmt.where(AuditLog.created_at <= end)
        stmt = stmt.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)
