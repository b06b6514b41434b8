"""Customers (tenants): creation, ownership and customer success staffing.

A customer's domain comes from its owner's email address. Names and domains
are unique among live customers.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..access import UserContext, can_access_customer, is_customer_success, is_system_admin
from ..errors import ConflictError, NotFoundError, ValidationError
from ..pagination import Page, PageParams, paginate
from ..queries import search_clause
from .customer_success import validate_cs_rep

logger = logging.getLogger(__name__)

_CSO = models.CustomerSuccessOwnedCustomer


def email_domain(email: str) -> str | None:
    _, sep, domain = email.strip().lower().rpartition("@")
    return domain if sep and domain else None


def _live():
    return models.Customer.deleted_at.is_(None)


async def list_customers(
    session: AsyncSession,
    ctx: UserContext,
    *,
    params: PageParams,
    search: str | None = None,
) -> Page[models.Customer]:
    """Admins see every customer, CS reps their assigned ones, members their own."""
    stmt = select(models.Customer).where(_live())
    if not is_system_admin(ctx):
        if is_customer_success(ctx):
            assigned = select(_CSO.customer_id).where(_CSO.user_id == ctx.user_id)
            stmt = stmt.where(models.Customer.id.in_(assigned))
        else:
            stmt = stmt.where(models.Customer.id == ctx.customer_id)
    if search and search.strip():
        stmt = stmt.where(search_clause(search, models.Customer.name, models.Customer.domain))
    return await paginate(session, stmt.order_by(models.Customer.name), params)


async def get_customer(session: AsyncSession, customer_id: str) -> models.Customer:
    customer = await session.get(models.Customer, customer_id)
    if customer is None or customer.deleted_at is not None:
        raise NotFoundError("No customer with given ID exists")
    return customer


async def get_visible_customer(session: AsyncSession, ctx: UserContext, customer_id: str) -> models.Customer:
    """Like ``get_customer``, but customers the caller cannot access look missing."""
    if not await can_access_customer(session, ctx, customer_id):
        raise NotFoundError("No customer with given ID exists")
    return await get_customer(session, customer_id)


async def _validate_owner(session: AsyncSession, owner_user_id: str, customer_id: str | None = None) -> models.User:
    owner = await session.get(models.User, owner_user_id)
    if owner is None or owner.deleted_at is not None:
        raise NotFoundError(f"User with ID {owner_user_id} not found")
    if owner.customer_id and owner.customer_id != customer_id:
        raise ConflictError("Owner already belongs to another customer")
    return owner


async def _ensure_unique(
    session: AsyncSession,
    *,
    name: str | None = None,
    domain: str | None = None,
    exclude_id: str | None = None,
) -> None:
    def others(stmt):
        stmt = stmt.where(_live())
        return stmt.where(models.Customer.id != exclude_id) if exclude_id else stmt

    if name:
        stmt = others(select(models.Customer.id).where(func.lower(models.Customer.name) == name.lower()))
        if (await session.execute(stmt.limit(1))).first():
            raise ConflictError(f"Customer with the same name already exists: {name}")
    if domain:
        stmt = others(select(models.Customer.id).where(models.Customer.domain == domain))
        if (await session.execute(stmt.limit(1))).first():
            raise ConflictError(f"Customer with the same email domain already exists: {domain}")


async def _validate_reps(session: AsyncSession, user_ids: list[str]) -> list[str]:
    wanted = list(dict.fromkeys(user_ids))
    for user_id in wanted:
        await validate_cs_rep(session, user_id)
    return wanted


async def _sync_customer_success(session: AsyncSession, customer_id: str, wanted: list[str]) -> None:
    stmt = select(_CSO).where(_CSO.customer_id == customer_id)
    current = {a.user_id: a for a in (await session.execute(stmt)).scalars()}
    for user_id, assignment in current.items():
        if user_id not in wanted:
            await session.delete(assignment)
    for user_id in wanted:
        if user_id not in current:
            session.add(_CSO(user_id=user_id, customer_id=customer_id))


async def create_customer(
    session: AsyncSession,
    *,
    name: str,
    owner_user_id: str | None = None,
    customer_success_ids: list[str] | None = None,
) -> models.Customer:
    """Create a customer, optionally with an owner and CS reps.

    The owner joins the new customer and its email domain becomes the
    customer's domain.

    Raises:
        ValidationError: Blank name
        NotFoundError: Unknown owner or CS rep
        ConflictError: Duplicate name or domain, owner taken, or a non-CS user in ``customer_success_ids``
    """
    name = name.strip()
    if not name:
        raise ValidationError("Customer name is required")
    owner = await _validate_owner(session, owner_user_id) if owner_user_id else None
    domain = email_domain(owner.email) if owner else None
    await _ensure_unique(session, name=name, domain=domain)
    reps = await _validate_reps(session, customer_success_ids or [])

    customer = models.Customer(name=name, domain=domain, owner_user_id=owner.id if owner else None)
    session.add(customer)
    await session.flush()
    if owner is not None:
        owner.customer_id = customer.id
    if reps:
        await _sync_customer_success(session, customer.id, reps)
    await session.commit()

    logger.info(f"Created customer {customer.name} ({customer.id})")
    return customer


async def update_customer(session: AsyncSession, customer_id: str, fields: dict) -> models.Customer:
    """Apply ``fields``; ``customer_success_ids`` replaces the current CS reps."""
    customer = await get_customer(session, customer_id)

    if fields.get("name") is not None:
        name = fields["name"].strip()
        if not name:
            raise ValidationError("Customer name is required")
        await _ensure_unique(session, name=name, exclude_id=customer.id)
        customer.name = name
    if fields.get("is_active") is not None:
        customer.is_active = fields["is_active"]
    if fields.get("owner_user_id") and fields["owner_user_id"] != customer.owner_user_id:
        owner = await _validate_owner(session, fields["owner_user_id"], customer.id)
        domain = email_domain(owner.email)
        await _ensure_unique(session, domain=domain, exclude_id=customer.id)
        owner.customer_id = customer.id
        customer.owner_user_id = owner.id
        customer.domain = domain
    if fields.get("customer_success_ids") is not None:
        reps = await _validate_reps(session, fields["customer_success_ids"])
        await _sync_customer_success(session, customer.id, reps)

    await session.commit()
    return customer


async def delete_customer(session: AsyncSession, customer_id: str) -> None:
    """Soft delete: the row stays for its history but disappears from every listing."""
    customer = await get_customer(session, customer_id)
    customer.deleted_at = models.utcnow()
    customer.is_active = False
    await session.commit()
    logger.info(f"Deleted customer {customer_id}")
