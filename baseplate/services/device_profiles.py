"""Device profile options. Anyone can read them; only system admins write."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..access import UserContext, ensure_system_admin
from ..errors import NotFoundError, ValidationError, translate_integrity_error

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "A device profile with this programmatic name already exists"
EDITABLE_FIELDS = (
    "programmatic_name",
    "display_name",
    "viewport_width",
    "viewport_height",
    "device_pixel_ratio",
    "user_agent",
    "is_mobile",
    "description",
    "sort_order",
    "is_active",
)


def _check_dimensions(profile: models.DeviceProfile) -> None:
    if profile.viewport_width is not None and profile.viewport_width <= 0:
        raise ValidationError("viewport_width must be greater than 0")
    if profile.viewport_height is not None and profile.viewport_height <= 0:
        raise ValidationError("viewport_height must be greater than 0")
    if profile.device_pixel_ratio is not None and profile.device_pixel_ratio <= 0:
        raise ValidationError("device_pixel_ratio must be greater than 0")


async def list_device_profiles(session: AsyncSession, *, include_inactive: bool = False) -> list[models.DeviceProfile]:
    stmt = select(models.DeviceProfile)
    if not include_inactive:
        stmt = stmt.where(models.DeviceProfile.is_active.is_(True))
    stmt = stmt.order_by(models.DeviceProfile.sort_order, models.DeviceProfile.display_name)
    return list((await session.execute(stmt)).scalars().all())


async def get_device_profile(session: AsyncSession, profile_id: str) -> models.DeviceProfile:
    profile = await session.get(models.DeviceProfile, profile_id)
    if profile is None:
        raise NotFoundError("Device profile not found")
    return profile


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise translate_integrity_error(e, unique_message=DUPLICATE_NAME) from e


async def create_device_profile(session: AsyncSession, ctx: UserContext, fields: dict) -> models.DeviceProfile:
    ensure_system_admin(ctx, "Only system administrators can manage device profiles")
    profile = models.DeviceProfile(**{k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None})
    _check_dimensions(profile)
    session.add(profile)
    await _commit(session)
    await session.refresh(profile)
    logger.info(f"Created device profile {profile.programmatic_name}")
    return profile


async def update_device_profile(
    session: AsyncSession,
    ctx: UserContext,
    profile_id: str,
    changes: dict,
) -> models.DeviceProfile:
    ensure_system_admin(ctx, "Only system administrators can manage device profiles")
    profile = await get_device_profile(session, profile_id)
    for key in EDITABLE_FIELDS:
        if key in changes:
            setattr(profile, key, changes[key])
    _check_dimensions(profile)
    await _commit(session)
    await session.refresh(profile)
    return profile


async def delete_device_profile(session: AsyncSession, ctx: UserContext, profile_id: str) -> None:
    ensure_system_admin(ctx, "Only system administrators can manage device profiles")
    profile = await get_device_profile(session, profile_id)
    await session.delete(profile)
    await session.commit()
    logger.info(f"Deleted device profile {profile_id}")
