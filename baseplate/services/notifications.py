"""Notification creation, fan-out and read tracking.

A notification addressed to a customer is inserted once per live user of the
customer. Realtime updates (unread counts, then in-app messages) go out after
a short fixed delay and are best effort: failures are logged, never raised.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from .. import models
from ..config import settings
from ..errors import ConflictError, NotFoundError
from ..pagination import Page, PageParams, paginate
from ..queries import json_array_contains, json_array_overlaps, search_clause
from ..sanitize import sanitize_notification_html

logger = logging.getLogger(__name__)

IN_APP = "in_app"


def unread_topic(user_id: str) -> str:
    return f"unread-notifications:{user_id}"


def main_topic(user_id: str) -> str:
    return f"main-notifications:{user_id}"


def notification_payload(notification: models.Notification) -> dict[str, Any]:
    """JSON-safe view of a notification for realtime subscribers."""
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "customer_id": notification.customer_id,
        "sender_id": notification.sender_id,
        "template_id": notification.template_id,
        "type": list(notification.type or []),
        "title": notification.title,
        "message": notification.message,
        "channel": notification.channel,
        "metadata": notification.metadata_,
        "generated_by": notification.generated_by,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
    }


def wants_in_app(notification: models.Notification) -> bool:
    return bool(notification.user_id and notification.customer_id and IN_APP in (notification.type or []))


async def unread_count(session: AsyncSession, user_id: str) -> int:
    stmt = select(func.count(models.Notification.id)).where(
        models.Notification.user_id == user_id,
        models.Notification.read_at.is_(None),
    )
    return (await session.execute(stmt)).scalar_one()


async def unread_counts(session: AsyncSession, user_ids: Iterable[str]) -> dict[str, int]:
    """Unread counts for many users in one query; users with none map to 0."""
    ids = list(user_ids)
    if not ids:
        return {}
    stmt = (
        select(models.Notification.user_id, func.count(models.Notification.id))
        .where(models.Notification.user_id.in_(ids), models.Notification.read_at.is_(None))
        .group_by(models.Notification.user_id)
    )
    counts = {user_id: 0 for user_id in ids}
    for user_id, count in (await session.execute(stmt)).all():
        counts[user_id] = count
    return counts


async def send_unread_count(broadcaster: RealtimeBroadcaster, user_id: str, count: int) -> None:
    if not await broadcaster.send(unread_topic(user_id), "unread_count", {"count": count}):
        logger.error(f"Failed to send unread count for user {user_id}")


async def send_in_app(broadcaster: RealtimeBroadcaster, payload: dict[str, Any]) -> None:
    if not await broadcaster.send(main_topic(payload["user_id"]), "new", payload):
        logger.error(f"Failed to send in-app notification {payload['id']}")


async def refresh_unread_count(session: AsyncSession, broadcaster: RealtimeBroadcaster, user_id: str) -> int:
    """Recount and broadcast the unread total for ``user_id``."""
    count = await unread_count(session, user_id)
    await send_unread_count(broadcaster, user_id, count)
    return count


async def _live_customer_user_ids(session: AsyncSession, customer_id: str) -> list[str]:
    stmt = select(models.User.id).where(
        models.User.customer_id == customer_id,
        models.User.deleted_at.is_(None),
    )
    return list((await session.execute(stmt)).scalars().all())


async def create_notification(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    *,
    title: str,
    message: str,
    user_id: str | None = None,
    customer_id: str | None = None,
    type: list[str] | None = None,
    channel: str | None = None,
    template_id: str | None = None,
    metadata: dict | None = None,
    sender_id: str | None = None,
    generated_by: str | None = None,
) -> models.Notification:
    """Create a notification for one user or for every user of a customer.

    Args:
        session: Database session
        broadcaster: Realtime broadcaster for unread counts and in-app messages
        title: Notification title
        message: HTML body, sanitized before storage
        user_id: Single recipient
        customer_id: Recipient customer; without ``user_id`` every live user receives a copy
        type: Delivery types, defaults to ``["in_app"]``
        channel: Feature channel (``article``, ``segment``...)
        template_id: Template the notification came from
        metadata: Free-form JSON attached to the notification
        sender_id: User who sent it
        generated_by: Human-readable origin

    Returns:
        The created notification (the last one when fanning out)

    Raises:
        ConflictError: No recipient given, or the customer has no users
    """
    if not user_id and not customer_id:
        raise ConflictError("Notification must be associated with a user or customer")

    fields = dict(
        type=list(type or [IN_APP]),
        title=title,
        message=sanitize_notification_html(message),
        channel=channel,
        template_id=template_id,
        metadata_=metadata,
        sender_id=sender_id,
        generated_by=generated_by,
    )

    if user_id:
        if customer_id is None:
            user = await session.get(models.User, user_id)
            customer_id = user.customer_id if user else None
        notification = models.Notification(user_id=user_id, customer_id=customer_id, **fields)
        await _save(session, [notification])

        count = await unread_count(session, user_id)
        work = [send_unread_count(broadcaster, user_id, count)]
        if wants_in_app(notification):
            work.append(send_in_app(broadcaster, notification_payload(notification)))
        await asyncio.gather(*work)
        return notification

    recipients = await _live_customer_user_ids(session, customer_id)
    if not recipients:
        raise ConflictError("No users found for the customer")

    notifications = [models.Notification(user_id=uid, customer_id=customer_id, **fields) for uid in recipients]
    await _save(session, notifications)
    logger.info(f"Created {len(notifications)} notifications for customer {customer_id}")

    counts = await unread_counts(session, recipients)
    payloads = [notification_payload(n) for n in notifications if wants_in_app(n)]

    async def fan_out() -> None:
        await asyncio.gather(*(send_unread_count(broadcaster, uid, c) for uid, c in counts.items()))
        await asyncio.gather(*(send_in_app(broadcaster, p) for p in payloads))

    broadcaster.schedule(settings.realtime.broadcast_delay_ms / 1000, fan_out)
    return notifications[-1]


async def _save(session: AsyncSession, notifications: list[models.Notification]) -> None:
    try:
        session.add_all(notifications)
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to store notifications: {e}", exc_info=True)
        await session.rollback()
        raise
    for notification in notifications:
        await session.refresh(notification)


async def get_notification(session: AsyncSession, *, user_id: str, notification_id: str) -> models.Notification:
    stmt = select(models.Notification).where(
        models.Notification.id == notification_id,
        models.Notification.user_id == user_id,
    )
    notification = (await session.execute(stmt)).scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


async def list_notifications(
    session: AsyncSession,
    *,
    user_id: str,
    params: PageParams,
    type: str | None = None,
    is_read: bool | None = None,
    channel: str | None = None,
) -> Page[models.Notification]:
    """The caller's notifications, newest first."""
    stmt = select(models.Notification).where(models.Notification.user_id == user_id)
    if type:
        stmt = stmt.where(json_array_contains(models.Notification.type, type))
    if is_read is not None:
        stmt = stmt.where(
            models.Notification.read_at.is_not(None) if is_read else models.Notification.read_at.is_(None)
        )
    if channel:
        stmt = stmt.where(models.Notification.channel == channel)
    stmt = stmt.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
    return await paginate(session, stmt, params)


async def list_admin_notifications(
    session: AsyncSession,
    *,
    params: PageParams,
    user_ids: list[str] | None = None,
    customer_ids: list[str] | None = None,
    sender_ids: list[str] | None = None,
    types: list[str] | None = None,
    is_read: bool | None = None,
    channels: list[str] | None = None,
    search: str | None = None,
) -> Page[models.Notification]:
    """Notifications across users for administrators."""
    N = models.Notification
    stmt = select(N)
    if user_ids:
        stmt = stmt.where(N.user_id.in_(user_ids))
    if customer_ids:
        stmt = stmt.where(N.customer_id.in_(customer_ids))
    if sender_ids:
        stmt = stmt.where(N.sender_id.in_(sender_ids))
    if types:
        stmt = stmt.where(json_array_overlaps(N.type, types))
    if is_read is not None:
        stmt = stmt.where(N.read_at.is_not(None) if is_read else N.read_at.is_(None))
    if channels:
        stmt = stmt.where(N.channel.in_(channels))
    if search and search.strip():
        stmt = stmt.where(search_clause(search, N.title, N.message, N.generated_by))
    stmt = stmt.order_by(N.created_at.desc(), N.id.desc())
    return await paginate(session, stmt, params)


async def mark_as_read(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    *,
    user_id: str,
    notification_id: str,
) -> models.Notification:
    notification = await get_notification(session, user_id=user_id, notification_id=notification_id)
    if notification.read_at is None:
        notification.read_at = models.utcnow()
        await session.commit()
        await session.refresh(notification)
    await refresh_unread_count(session, broadcaster, user_id)
    return notification


async def mark_all_as_read(session: AsyncSession, broadcaster: RealtimeBroadcaster, *, user_id: str) -> int:
    """Mark every unread notification of ``user_id`` read; returns how many changed."""
    stmt = (
        update(models.Notification)
        .where(models.Notification.user_id == user_id, models.Notification.read_at.is_(None))
        .values(read_at=models.utcnow())
    )
    result = await session.execute(stmt)
    await session.commit()
    await refresh_unread_count(session, broadcaster, user_id)
    return result.rowcount or 0


async def mark_many_as_read(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    *,
    user_id: str,
    notification_ids: list[str],
) -> int:
    """Mark the given unread notifications read; ids of other users are ignored."""
    if not notification_ids:
        return 0
    stmt = (
        update(models.Notification)
        .where(
            models.Notification.id.in_(notification_ids),
            models.Notification.user_id == user_id,
            models.Notification.read_at.is_(None),
        )
        .values(read_at=models.utcnow())
    )
    result = await session.execute(stmt)
    await session.commit()
    await refresh_unread_count(session, broadcaster, user_id)
    return result.rowcount or 0
