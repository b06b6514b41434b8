"""Roles and the permission catalog.

System roles ship with the platform and cannot be edited or deleted; custom
roles may only hold permission names present in the catalog.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError, translate_integrity_error
from ..queries import search_clause

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "Role with name already exists"


async def list_permissions(session: AsyncSession) -> list[models.Permission]:
    stmt = select(models.Permission).order_by(models.Permission.name)
    return list((await session.execute(stmt)).scalars().all())


async def list_roles(session: AsyncSession, *, search: str | None = None) -> list[models.Role]:
    stmt = select(models.Role)
    if search and search.strip():
        stmt = stmt.where(search_clause(search, models.Role.name, models.Role.description))
    return list((await session.execute(stmt.order_by(models.Role.name))).scalars().all())


async def get_role(session: AsyncSession, role_id: str) -> models.Role:
    role = await session.get(models.Role, role_id)
    if role is None:
        raise NotFoundError("No role with given ID exists")
    return role


async def get_role_by_name(session: AsyncSession, name: str) -> models.Role | None:
    stmt = select(models.Role).where(models.Role.name == name)
    return (await session.execute(stmt)).scalar_one_or_none()


async def validate_permission_names(session: AsyncSession, names: list[str]) -> list[str]:
    """Return ``names`` deduplicated, in order.

    Raises:
        ValidationError: If any name is not in the permission catalog
    """
    wanted = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
    if not wanted:
        return []
    stmt = select(models.Permission.name).where(models.Permission.name.in_(wanted))
    known = set((await session.execute(stmt)).scalars().all())
    invalid = [n for n in wanted if n not in known]
    if invalid:
        raise ValidationError(f"Invalid permission names: {', '.join(invalid)}")
    return wanted


def _ensure_editable(role: models.Role) -> None:
    if role.is_system_role:
        raise ForbiddenError(f'Cannot modify system role "{role.name}". System roles are protected.')


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise translate_integrity_error(e, unique_message=DUPLICATE_NAME) from e


async def create_role(
    session: AsyncSession,
    *,
    name: str,
    description: str | None = None,
    permissions: list[str] | None = None,
) -> models.Role:
    """Create a custom role.

    Raises:
        ConflictError: A role with this name exists
        ValidationError: Unknown permission names
    """
    name = name.strip()
    if await get_role_by_name(session, name) is not None:
        raise ConflictError(DUPLICATE_NAME)
    role = models.Role(
        name=name,
        description=description,
        permissions=await validate_permission_names(session, permissions or []),
        is_system_role=False,
    )
    session.add(role)
    await _commit(session)
    logger.info(f"Created role {role.name} ({role.id})")
    return role


async def update_role(session: AsyncSession, role_id: str, fields: dict) -> models.Role:
    role = await get_role(session, role_id)
    _ensure_editable(role)

    if "name" in fields and fields["name"] is not None:
        name = fields["name"].strip()
        existing = await get_role_by_name(session, name)
        if existing is not None and existing.id != role.id:
            raise ConflictError(DUPLICATE_NAME)
        role.name = name
    if "description" in fields:
        role.description = fields["description"]
    if "permissions" in fields and fields["permissions"] is not None:
        role.permissions = await validate_permission_names(session, fields["permissions"])

    await _commit(session)
    return role


async def set_role_permissions(session: AsyncSession, role_id: str, names: list[str]) -> models.Role:
    """Replace the permissions of a custom role."""
    role = await get_role(session, role_id)
    _ensure_editable(role)
    role.permissions = await validate_permission_names(session, names)
    await session.commit()
    logger.info(f"Permissions updated for role {role.id}: {role.permissions}")
    return role


async def delete_role(session: AsyncSession, role_id: str) -> None:
    role = await get_role(session, role_id)
    _ensure_editable(role)
    stmt = select(func.count()).select_from(models.User).where(
        models.User.role_id == role.id, models.User.deleted_at.is_(None)
    )
    if (await session.execute(stmt)).scalar_one():
        raise ConflictError("Role is assigned to users")
    await session.delete(role)
    await session.commit()
