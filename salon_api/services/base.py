from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services. Holds a session and the owner id for use across
    multiple repositories.

    Services should keep business logic and orchestration, delegating data access
    to repositories.
    """

    def __init__(self, session: AsyncSession, owner_id: UUID) -> None:
        self.session = session
        self.owner_id = owner_id


def as_naive_datetime(value: Union[date, datetime]) -> datetime:
    """Dates become midnight; aware datetimes are converted to naive UTC so mixed values compare."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
