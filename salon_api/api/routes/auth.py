from __future__ import annotations

import logging
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_api.core.deps import get_current_active_user
from salon_api.core.errors import BadRequestError, UnauthorizedError
from salon_api.core.rate_limit import auth_rate_limit
from salon_api.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from salon_api.core.settings import get_app_settings
from salon_api.db.models.security import User
from salon_api.db.session import get_async_session
from salon_api.repositories.security import UserRepository
from salon_api.schemas.auth import RefreshRequest, RegisterRequest, TokenPair, UserRead
from salon_api.schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _issue_tokens(response: Response, user: User) -> TokenPair:
    settings = get_app_settings()
    access = create_access_token(subject=str(user.id))
    refresh = create_refresh_token(subject=str(user.id))
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserRead,
    status_code=201,
    summary="Register owner",
    description="Create a new owner account. Every record the account creates is scoped to it.",
    dependencies=[Depends(auth_rate_limit)],
)
async def register_user(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_async_session),
) -> UserRead:
    """Register a new owner account."""
    repo = UserRepository(session)
    existing = await repo.get_user_by_email(payload.email)
    if existing:
        raise BadRequestError("User with this email already exists")

    user = await repo.create_user(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
    )
    logger.info("Registered user %s", user.id)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description=(
        "Authenticate using the OAuth2 password form (username = email) and receive "
        "access/refresh tokens. The access token is also set as an http-only cookie."
    ),
    dependencies=[Depends(auth_rate_limit)],
)
async def login_for_tokens(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_async_session),
) -> TokenPair:
    """Authenticate user and issue tokens."""
    repo = UserRepository(session)
    user = await repo.get_user_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info("Failed login for %s", form_data.username)
        raise UnauthorizedError("Invalid credentials")
    if not user.is_active:
        raise BadRequestError("User is inactive")
    return _issue_tokens(response, user)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new token pair from a valid refresh token.",
)
async def refresh_token(
    payload: RefreshRequest,
    response: Response,
    session: AsyncSession = Depends(get_async_session),
) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    try:
        claims: Dict[str, Any] = decode_token(payload.refresh_token)
    except JWTError:
        raise UnauthorizedError("Invalid refresh token")

    if claims.get("type") != "refresh":
        raise UnauthorizedError("Invalid token type")

    try:
        user_id = UUID(str(claims.get("sub")))
    except ValueError:
        raise UnauthorizedError("Invalid refresh token")

    user = await UserRepository(session).get_user_by_id(user_id)
    if not user or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    return _issue_tokens(response, user)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Clear the session cookie. Bearer-token clients should discard their tokens.",
)
async def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie."""
    response.delete_cookie(get_app_settings().AUTH_COOKIE_NAME)
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the current authenticated user.",
)
async def read_current_user(user: User = Depends(get_current_active_user)) -> UserRead:
    """Return current user profile."""
    return UserRead.model_validate(user)
