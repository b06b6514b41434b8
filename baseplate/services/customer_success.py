"""Assignments of customer success reps to the customers they own."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog.roles import CUSTOMER_SUCCESS

from .. import models
from ..access import is_assigned_customer_success
from ..errors import ConflictError, NotFoundError, translate_integrity_error

logger = logging.getLogger(__name__)

ALREADY_ASSIGNED = "CS rep is already assigned to this customer"

_CSO = models.CustomerSuccessOwnedCustomer


def _with_summaries(stmt):
    return stmt.options(selectinload(_CSO.user), selectinload(_CSO.customer))


async def list_assignments(
    session: AsyncSession,
    *,
    user_id: str | None = None,
    customer_id: str | None = None,
) -> list[models.CustomerSuccessOwnedCustomer]:
    stmt = select(_CSO)
    if user_id:
        stmt = stmt.where(_CSO.user_id == user_id)
    if customer_id:
        stmt = stmt.where(_CSO.customer_id == customer_id)
    stmt = _with_summaries(stmt.order_by(_CSO.created_at.desc()))
    return list((await session.execute(stmt)).scalars().all())


async def get_assignment(session: AsyncSession, assignment_id: str) -> models.CustomerSuccessOwnedCustomer:
    stmt = _with_summaries(select(_CSO).where(_CSO.id == assignment_id)).execution_options(populate_existing=True)
    assignment = (await session.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise NotFoundError(f"Customer success assignment with ID {assignment_id} not found")
    return assignment


async def validate_cs_rep(session: AsyncSession, user_id: str) -> None:
    user = await session.get(models.User, user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError(f"User with ID {user_id} not found")
    if user.role is None or user.role.name != CUSTOMER_SUCCESS:
        raise ConflictError("User must have a customer success role to be assigned to customers")


async def _validate_customer(session: AsyncSession, customer_id: str) -> None:
    if await session.get(models.Customer, customer_id) is None:
        raise NotFoundError(f"Customer with ID {customer_id} not found")


async def create_assignment(
    session: AsyncSession,
    *,
    user_id: str,
    customer_id: str,
) -> models.CustomerSuccessOwnedCustomer:
    """Assign a CS rep to a customer.

    Raises:
        NotFoundError: Unknown user or customer
        ConflictError: User is not a CS rep, or already assigned
    """
    await validate_cs_rep(session, user_id)
    await _validate_customer(session, customer_id)
    if await is_assigned_customer_success(session, user_id, customer_id):
        raise ConflictError(ALREADY_ASSIGNED)

    assignment = models.CustomerSuccessOwnedCustomer(user_id=user_id, customer_id=customer_id)
    session.add(assignment)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise translate_integrity_error(e, unique_message=ALREADY_ASSIGNED) from e

    logger.info(f"Assigned CS rep {user_id} to customer {customer_id}")
    return await get_assignment(session, assignment.id)


async def remove_assignment(session: AsyncSession, assignment_id: str) -> None:
    assignment = await session.get(_CSO, assignment_id)
    if assignment is None:
        raise NotFoundError(f"Customer success assignment with ID {assignment_id} not found")
    await session.delete(assignment)
    await session.commit()


async def remove_assignment_for(session: AsyncSession, *, user_id: str, customer_id: str) -> None:
    stmt = select(_CSO).where(_CSO.user_id == user_id, _CSO.customer_id == customer_id)
    assignment = (await session.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise NotFoundError("No assignment found for this CS rep and customer")
    await session.delete(assignment)
    await session.commit()
    logger.info(f"Removed CS rep {user_id} from customer {customer_id}")


async def is_assigned(session: AsyncSession, *, user_id: str, customer_id: str) -> bool:
    return await is_assigned_customer_success(session, user_id, customer_id)
