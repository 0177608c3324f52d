from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select

from salon_api.db.models.security import User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Repository for owner accounts."""

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def create_user(
        self,
        *,
        email: str,
        full_name: Optional[str],
        hashed_password: str,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            full_name=full_name,
            hashed_password=hashed_password,
            is_active=is_active,
        )
        await self.add(user)
        await self.commit()
        await self.refresh(user)
        return user
