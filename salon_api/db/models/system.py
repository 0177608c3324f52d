from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from salon_api.db.base import Base, JSONType, TimestampMixin, UUIDPkMixin


class OwnerSettings(UUIDPkMixin, TimestampMixin, Base):
    """Per-owner settings document (business profile, booking, finance, system)."""
    __tablename__ = "settings"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    settings: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)


class AuditLog(UUIDPkMixin, TimestampMixin, Base):
    """Record of a create/update/delete performed by a user."""
    __tablename__ = "audit_logs"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action_type: Mapped[str] = mapped_column(Text, nullable=False)
    resource_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    resource_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    old_data: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    new_data: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
