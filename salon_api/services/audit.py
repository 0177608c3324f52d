from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.repositories.system import AuditLogRepository

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = ("create", "update", "delete")


def snapshot(entity: Any) -> Optional[Dict[str, Any]]:
    """Return a JSON-compatible dict of an ORM row's column values."""
    if entity is None:
        return None
    mapper = inspect(entity).mapper
    return jsonable_encoder({attr.key: getattr(entity, attr.key) for attr in mapper.column_attrs})


class AuditService:
    """Writes audit entries for mutations performed through the API."""

    def __init__(self, session: AsyncSession, user_id: UUID, request: Optional[Request] = None) -> None:
        self.repo = AuditLogRepository(session, user_id)
        self.request = request

    # PUBLIC_INTERFACE
    async def record(
        self,
        action_type: str,
        resource_type: str,
        resource_id: Any = None,
        *,
        old: Any = None,
        new: Any = None,
        description: Optional[str] = None,
    ) -> None:
        """
        Persist an audit entry. `old` / `new` may be ORM rows or plain dicts.

        Failures are logged and do not fail the request that triggered them,
        since the audited change has already been committed.
        """
        ip_address = None
        user_agent = None
        if self.request is not None:
            ip_address = self.request.client.host if self.request.client else None
            user_agent = self.request.headers.get("user-agent")
        try:
            await self.repo.record(
                action_type=action_type,
                resource_type=resource_type,
                resource_id=str(resource_id) if resource_id is not None else None,
                old_data=old if isinstance(old, dict) or old is None else snapshot(old),
                new_data=new if isinstance(new, dict) or new is None else snapshot(new),
                description=description or f"{action_type} {resource_type}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except SQLAlchemyError:
            logger.exception("Failed to write audit log for %s %s", action_type, resource_type)
            await self.repo.session.rollback()
