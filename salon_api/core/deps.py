from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.errors import ForbiddenError, UnauthorizedError
from salon_api.core.logging import bind_owner
from salon_api.core.security import decode_token
from salon_api.core.settings import get_app_settings
from salon_api.db.models.security import User
from salon_api.db.session import get_async_session
from salon_api.repositories.security import UserRepository
from salon_api.services.audit import AuditService

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); auto_error is off so the session cookie can be used instead
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def _token_from_request(request: Request, bearer: Optional[str]) -> Optional[str]:
    if bearer:
        return bearer
    return request.cookies.get(get_app_settings().AUTH_COOKIE_NAME)


# PUBLIC_INTERFACE
async def get_current_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Resolve the current user from the Authorization bearer token or the session cookie.

    Raises:
        UnauthorizedError: token missing, invalid, expired, not an access token, or user unknown.
    """
    token = _token_from_request(request, bearer)
    if not token:
        raise UnauthorizedError("Not authenticated")
    try:
        payload = decode_token(token)
    except JWTError:
        raise UnauthorizedError("Invalid token")

    if payload.get("type") != "access":
        raise UnauthorizedError("Invalid token type")

    user_id = payload.get("sub")
    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        raise UnauthorizedError("Invalid token")

    repo = UserRepository(session)
    user = await repo.get_user_by_id(user_uuid)
    if not user:
        raise UnauthorizedError("User not found")
    return user


# PUBLIC_INTERFACE
async def get_current_active_user(user: User = Depends(get_current_user)) -> User:
    """Ensure user is active."""
    if not user.is_active:
        raise ForbiddenError("Inactive user")
    return user


# PUBLIC_INTERFACE
async def get_owner_id(request: Request, user: User = Depends(get_current_active_user)) -> UUID:
    """
    Return the id that scopes every owned repository for this request.

    Also exposes it to logging and error envelopes.
    """
    bind_owner(user.id)
    request.state.owner_id = str(user.id)
    return user.id


# PUBLIC_INTERFACE
async def get_audit_service(
    request: Request,
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> AuditService:
    """Audit writer bound to the current user and request metadata."""
    return AuditService(session, user.id, request)
