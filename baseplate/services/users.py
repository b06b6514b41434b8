"""User management within a customer.

Callers are scoped: system admins manage anyone, everyone else only users of
the customer they are working on. System administrator and customer success
roles are handed out by system admins alone.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.roles import CUSTOMER_SUCCESS, PRIVILEGED_ROLES, SYSTEM_ADMIN

from .. import models
from ..access import UserContext, can_access_customer, is_system_admin
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..pagination import Page, PageParams, paginate
from ..queries import search_clause
from .roles import get_role

logger = logging.getLogger(__name__)

NOT_FOUND = "No user with given ID exists"
DELETED_PREFIX = "__deleted__"


def _is_privileged(user: models.User) -> bool:
    return user.is_superadmin or (user.role is not None and user.role.name in (SYSTEM_ADMIN, CUSTOMER_SUCCESS))


def _live():
    return models.User.deleted_at.is_(None)


async def list_users(
    session: AsyncSession,
    *,
    params: PageParams,
    customer_id: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
) -> Page[models.User]:
    stmt = select(models.User).where(_live())
    if customer_id:
        stmt = stmt.where(models.User.customer_id == customer_id)
    if is_active is not None:
        stmt = stmt.where(models.User.is_active.is_(is_active))
    if search and search.strip():
        stmt = stmt.where(
            search_clause(search, models.User.email, models.User.first_name, models.User.last_name)
        )
    return await paginate(session, stmt.order_by(models.User.created_at.desc()), params)


async def get_user(session: AsyncSession, user_id: str) -> models.User:
    user = await session.get(models.User, user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError(NOT_FOUND)
    return user


async def get_scoped_user(session: AsyncSession, ctx: UserContext, user_id: str) -> models.User:
    """Load a user the caller may manage; anyone else looks missing."""
    user = await get_user(session, user_id)
    if is_system_admin(ctx):
        return user
    if user.customer_id is None or not await can_access_customer(session, ctx, user.customer_id):
        raise NotFoundError(NOT_FOUND)
    if ctx.active_customer_id and user.customer_id != ctx.effective_customer_id:
        raise NotFoundError(NOT_FOUND)
    return user


async def _email_taken(session: AsyncSession, email: str) -> bool:
    stmt = select(models.User.id).where(func.lower(models.User.email) == email.lower(), _live())
    return (await session.execute(stmt.limit(1))).first() is not None


async def _assignable_role(session: AsyncSession, ctx: UserContext, role_id: str) -> models.Role:
    role = await get_role(session, role_id)
    if role.name in PRIVILEGED_ROLES and not is_system_admin(ctx):
        raise ForbiddenError(f'Only system administrators can assign the "{role.name}" role')
    return role


async def create_user(
    session: AsyncSession,
    ctx: UserContext,
    *,
    email: str,
    customer_id: str | None,
    role_id: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    auth_user_id: str | None = None,
) -> models.User:
    """Create a user in ``customer_id``.

    Raises:
        ConflictError: A live user already has this email
        NotFoundError: Unknown role or customer
        ForbiddenError: A privileged role requested by a non-admin
    """
    email = email.strip()
    if await _email_taken(session, email):
        raise ConflictError("User with this email already exists")
    if customer_id is not None:
        customer = await session.get(models.Customer, customer_id)
        if customer is None or customer.deleted_at is not None:
            raise NotFoundError(f"Customer with ID {customer_id} not found")
    if role_id is not None:
        await _assignable_role(session, ctx, role_id)

    user = models.User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        customer_id=customer_id,
        role_id=role_id,
        auth_user_id=auth_user_id,
    )
    session.add(user)
    await session.commit()
    logger.info(f"User {ctx.user_id} created user {user.id} in customer {customer_id}")
    return await _reload(session, user.id)


async def update_user(session: AsyncSession, ctx: UserContext, user_id: str, fields: dict) -> models.User:
    """Update names, role or status. Email addresses are not editable.

    Raises:
        ValidationError: Callers changing their own status
        ForbiddenError: Status changes on privileged users, or privileged roles from non-admins
    """
    user = await get_scoped_user(session, ctx, user_id)

    if fields.get("is_active") is not None and fields["is_active"] != user.is_active:
        if user.id == ctx.user_id:
            raise ValidationError("You cannot change your own status")
        if _is_privileged(user):
            raise ForbiddenError("You cannot change status of system administrator or customer success user")
        user.is_active = fields["is_active"]
    if fields.get("role_id") is not None and fields["role_id"] != user.role_id:
        await _assignable_role(session, ctx, fields["role_id"])
        if _is_privileged(user) and not is_system_admin(ctx):
            raise ForbiddenError("Only system administrators can change this user's role")
        user.role_id = fields["role_id"]
    for key in ("first_name", "last_name"):
        if key in fields:
            setattr(user, key, fields[key])

    await session.commit()
    return await _reload(session, user.id)


async def update_profile(session: AsyncSession, user_id: str, fields: dict) -> models.User:
    """Self-service edit: names only."""
    user = await get_user(session, user_id)
    for key in ("first_name", "last_name"):
        if key in fields:
            setattr(user, key, fields[key])
    await session.commit()
    return await _reload(session, user.id)


async def soft_delete_user(session: AsyncSession, ctx: UserContext, user_id: str) -> None:
    """Retire a user: the email is freed, the account suspended and its role cleared.

    Raises:
        ValidationError: Callers deleting themselves
        ConflictError: Privileged users and customer owners
    """
    if user_id == ctx.user_id:
        raise ValidationError("You cannot delete yourself.")
    user = await get_scoped_user(session, ctx, user_id)
    if _is_privileged(user):
        raise ConflictError("Not supported operation for system administrator or customer success user")
    owned = select(models.Customer.id).where(
        models.Customer.owner_user_id == user.id, models.Customer.deleted_at.is_(None)
    )
    if (await session.execute(owned.limit(1))).first():
        raise ConflictError("Cannot delete user who is a customer owner")

    user.email = f"{DELETED_PREFIX}{user.email}"
    user.deleted_at = models.utcnow()
    user.is_active = False
    user.role_id = None
    await session.commit()
    logger.info(f"User {ctx.user_id} deleted user {user.id}")


async def _reload(session: AsyncSession, user_id: str) -> models.User:
    # Refresh the joined role after a role_id change
    stmt = select(models.User).where(models.User.id == user_id).execution_options(populate_existing=True)
    return (await session.execute(stmt)).unique().scalar_one()
