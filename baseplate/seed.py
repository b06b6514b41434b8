"""Idempotent seeding of the role, permission and device profile catalogs.

The permission catalog holds the standalone permissions plus every system
module permission.
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.device_profiles import DEFAULT_DEVICE_PROFILES
from catalog.roles import PERMISSIONS, SYSTEM_ROLES
from catalog.system_modules import module_permissions

from . import models

logger = logging.getLogger(__name__)


async def _existing(session: AsyncSession, column) -> set[str]:
    return set((await session.execute(select(column))).scalars().all())


async def seed_catalogs(session: AsyncSession) -> dict[str, int]:
    """Insert missing roles, permissions and device profiles; existing rows are left alone.

    Returns:
        Number of rows inserted per catalog
    """
    roles = await _existing(session, models.Role.name)
    permissions = await _existing(session, models.Permission.name)
    profiles = await _existing(session, models.DeviceProfile.programmatic_name)

    added = {"roles": 0, "permissions": 0, "device_profiles": 0}
    for role in SYSTEM_ROLES:
        if role["name"] not in roles:
            session.add(models.Role(**role))
            added["roles"] += 1
    for permission in [*PERMISSIONS, *module_permissions()]:
        if permission["name"] not in permissions:
            session.add(models.Permission(**permission))
            added["permissions"] += 1
    for profile in DEFAULT_DEVICE_PROFILES:
        if profile["programmatic_name"] not in profiles:
            session.add(models.DeviceProfile(**profile))
            added["device_profiles"] += 1

    await session.commit()
    logger.info(f"Seeded catalogs: {added}")
    return added
