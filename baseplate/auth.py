"""Bearer token authentication.

Access tokens are HS256 JWTs issued by the identity provider. The ``user_id``
claim names the ``users`` row; tokens that only carry ``sub`` are matched on
``users.auth_user_id``.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

import jwt as pyjwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import models
from .access import (
    UserContext,
    can_access_customer,
    context_for_user,
    ensure_can_impersonate,
    has_permission,
    is_customer_owner,
    with_active_customer,
)
from .config import settings
from .db import get_session
from .errors import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, *, sub: str | None = None, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Issue a token the way the identity provider does. Used by scripts and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub or user_id,
        "user_id": user_id,
        "iat": now,
        "exp": now + expires_in,
    }
    if settings.auth.jwt_audience:
        payload["aud"] = settings.auth.jwt_audience
    return pyjwt.encode(payload, settings.auth.jwt_secret, algorithm=settings.auth.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return pyjwt.decode(
            token,
            settings.auth.jwt_secret,
            algorithms=[settings.auth.jwt_algorithm],
            audience=settings.auth.jwt_audience,
            options={"verify_aud": settings.auth.jwt_audience is not None},
        )
    except pyjwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired") from e
    except pyjwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e


async def _load_user(session: AsyncSession, claims: dict) -> models.User | None:
    if claims.get("user_id"):
        return await session.get(models.User, claims["user_id"])
    if claims.get("sub"):
        stmt = select(models.User).where(models.User.auth_user_id == claims["sub"])
        return (await session.execute(stmt)).scalar_one_or_none()
    return None


def _usable(user: models.User | None) -> bool:
    return user is not None and user.deleted_at is None and user.is_active


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> UserContext:
    """Dependency: resolve the caller, honouring impersonation and customer selection."""
    if credentials is None:
        raise AuthenticationError("Authentication required")

    claims = decode_token(credentials.credentials)
    user = await _load_user(session, claims)
    if not _usable(user):
        raise AuthenticationError("User not found or inactive")
    ctx = context_for_user(user)

    target_id = request.headers.get(settings.auth.impersonation_header)
    if target_id:
        target = await session.get(models.User, target_id)
        await ensure_can_impersonate(session, ctx, target)
        logger.info(f"User {user.id} impersonating {target.id}")
        ctx = context_for_user(target, actor_id=user.id)

    customer_id = request.headers.get(settings.auth.customer_header)
    if customer_id and customer_id != ctx.customer_id:
        if not await can_access_customer(session, ctx, customer_id):
            raise ForbiddenError("You do not have permission to access this customer")
        ctx = with_active_customer(ctx, customer_id)

    return ctx


def requires_permission(name: str) -> Callable[..., Awaitable[UserContext]]:
    """Dependency factory: the caller needs ``name``, or is a superadmin, or owns the customer."""

    async def dependency(
        ctx: UserContext = Depends(get_current_user),
        session: AsyncSession = Depends(get_session),
    ) -> UserContext:
        if has_permission(ctx, name) or ctx.is_superadmin:
            return ctx
        if await is_customer_owner(session, ctx):
            return ctx
        raise ForbiddenError(f"Missing permission: {name}")

    return dependency
