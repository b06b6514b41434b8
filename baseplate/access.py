"""Tenant isolation and permission checks.

Every read or write of customer-owned rows goes through
``can_access_customer``; option tables are writable by system admins only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.roles import CUSTOMER_SUCCESS, SYSTEM_ADMIN

from . import models
from .errors import ForbiddenError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserContext:
    """The effective caller of a request."""
    user_id: str
    customer_id: str | None
    role: str | None
    permissions: list[str] = field(default_factory=list)
    email: str = ""
    is_superadmin: bool = False
    # Set when a privileged user acts as ``user_id``
    actor_id: str | None = None
    # Customer picked through the customer header, already access-checked
    active_customer_id: str | None = None

    @property
    def is_impersonating(self) -> bool:
        return self.actor_id is not None and self.actor_id != self.user_id

    @property
    def effective_customer_id(self) -> str | None:
        return self.active_customer_id or self.customer_id


def context_for_user(user: models.User, *, actor_id: str | None = None) -> UserContext:
    role = user.role
    return UserContext(
        user_id=user.id,
        customer_id=user.customer_id,
        role=role.name if role else None,
        permissions=list(role.permissions or []) if role else [],
        email=user.email,
        is_superadmin=user.is_superadmin,
        actor_id=actor_id,
    )


def with_active_customer(ctx: UserContext, customer_id: str | None) -> UserContext:
    return replace(ctx, active_customer_id=customer_id)


def is_system_admin(ctx: UserContext) -> bool:
    return ctx.is_superadmin or ctx.role == SYSTEM_ADMIN


def is_customer_success(ctx: UserContext) -> bool:
    return ctx.role == CUSTOMER_SUCCESS


def has_permission(ctx: UserContext, name: str) -> bool:
    """``*`` grants everything, ``resource:*`` grants every ``resource:...``."""
    if is_system_admin(ctx):
        return True
    resource = name.split(":", 1)[0]
    for granted in ctx.permissions:
        if granted == "*" or granted == name:
            return True
        if granted.endswith(":*") and granted[:-2] == resource:
            return True
    return False


async def is_assigned_customer_success(session: AsyncSession, user_id: str, customer_id: str) -> bool:
    stmt = select(models.CustomerSuccessOwnedCustomer.id).where(
        models.CustomerSuccessOwnedCustomer.user_id == user_id,
        models.CustomerSuccessOwnedCustomer.customer_id == customer_id,
    )
    return (await session.execute(stmt.limit(1))).first() is not None


async def can_access_customer(session: AsyncSession, ctx: UserContext, customer_id: str | None) -> bool:
    """System admins see everything, members see their own customer, CS reps see assigned ones."""
    if customer_id is None:
        return False
    if is_system_admin(ctx):
        return True
    if ctx.customer_id == customer_id:
        return True
    if is_customer_success(ctx):
        return await is_assigned_customer_success(session, ctx.user_id, customer_id)
    return False


async def is_customer_owner(session: AsyncSession, ctx: UserContext, customer_id: str | None = None) -> bool:
    customer_id = customer_id or ctx.effective_customer_id
    if customer_id is None:
        return False
    customer = await session.get(models.Customer, customer_id)
    return customer is not None and customer.owner_user_id == ctx.user_id


async def ensure_customer_access(
    session: AsyncSession,
    ctx: UserContext,
    customer_id: str | None,
    message: str = "You do not have permission to access this customer",
) -> None:
    if not await can_access_customer(session, ctx, customer_id):
        logger.info(f"User {ctx.user_id} denied access to customer {customer_id}")
        raise ForbiddenError(message)


def ensure_system_admin(ctx: UserContext, message: str = "Only system administrators can perform this action") -> None:
    if not is_system_admin(ctx):
        raise ForbiddenError(message)


def require_permission(ctx: UserContext, name: str) -> None:
    if not has_permission(ctx, name):
        raise ForbiddenError(f"Missing permission: {name}")


def require_customer(ctx: UserContext) -> str:
    """The customer a request operates on."""
    customer_id = ctx.effective_customer_id
    if not customer_id:
        raise ValidationError("No customer selected")
    return customer_id


async def ensure_can_impersonate(session: AsyncSession, ctx: UserContext, target: models.User | None) -> None:
    """System admins may act as anyone but another admin; CS reps only within assigned customers."""
    if not (is_system_admin(ctx) or is_customer_success(ctx)):
        raise ForbiddenError("No impersonation permissions")
    if target is None or target.deleted_at is not None:
        raise ForbiddenError("Target user not found")
    if is_system_admin(context_for_user(target)):
        raise ForbiddenError("Cannot impersonate system administrator")
    if target.id == ctx.user_id:
        raise ForbiddenError("Cannot impersonate yourself")
    if not is_system_admin(ctx) and not await can_access_customer(session, ctx, target.customer_id):
        raise ForbiddenError("Cannot impersonate users from other customers")
    if not target.is_active:
        raise ForbiddenError("Cannot impersonate inactive user")
