"""Notification templates: CRUD and sending to a customer's users."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from .. import models
from ..errors import NotFoundError, ValidationError, translate_integrity_error
from ..pagination import Page, PageParams, paginate
from ..queries import json_array_overlaps
from ..sanitize import sanitize_editor_html
from .notifications import create_notification

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "A notification template with this title already exists"


@dataclass
class SendResult:
    template_id: str
    sent: int
    message: str


async def list_templates(
    session: AsyncSession,
    *,
    params: PageParams,
    customer_id: str | None = None,
    types: list[str] | None = None,
    channels: list[str] | None = None,
) -> Page[models.NotificationTemplate]:
    T = models.NotificationTemplate
    stmt = select(T).where(T.deleted_at.is_(None))
    if customer_id:
        stmt = stmt.where(T.customer_id == customer_id)
    if types:
        stmt = stmt.where(json_array_overlaps(T.type, types))
    if channels:
        stmt = stmt.where(T.channel.in_(channels))
    stmt = stmt.order_by(T.created_at.desc(), T.id)
    return await paginate(session, stmt, params)


async def get_template(
    session: AsyncSession,
    template_id: str,
    *,
    customer_id: str | None = None,
) -> models.NotificationTemplate:
    T = models.NotificationTemplate
    stmt = select(T).where(T.id == template_id, T.deleted_at.is_(None))
    if customer_id:
        stmt = stmt.where(T.customer_id == customer_id)
    template = (await session.execute(stmt)).scalar_one_or_none()
    if template is None:
        raise NotFoundError("Notification template not found")
    return template


async def create_template(
    session: AsyncSession,
    *,
    title: str,
    message: str,
    customer_id: str | None = None,
    type: list[str] | None = None,
    channel: str | None = None,
    metadata: dict | None = None,
    created_by: str | None = None,
) -> models.NotificationTemplate:
    template = models.NotificationTemplate(
        title=title.strip(),
        message=sanitize_editor_html(message),
        customer_id=customer_id,
        type=list(type or ["in_app"]),
        channel=channel,
        metadata_=metadata,
        created_by=created_by,
    )
    session.add(template)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise translate_integrity_error(e, unique_message=DUPLICATE_TITLE) from e
    await session.refresh(template)
    logger.info(f"Created notification template {template.id}: {template.title}")
    return template


async def update_template(
    session: AsyncSession,
    template_id: str,
    changes: dict,
    *,
    customer_id: str | None = None,
) -> models.NotificationTemplate:
    """Apply a partial update. Only keys present in ``changes`` are touched."""
    template = await get_template(session, template_id, customer_id=customer_id)
    for key, value in changes.items():
        if key == "message" and value is not None:
            value = sanitize_editor_html(value)
        elif key == "title" and value is not None:
            value = value.strip()
        elif key == "metadata":
            key = "metadata_"
        setattr(template, key, value)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise translate_integrity_error(e, unique_message=DUPLICATE_TITLE) from e
    await session.refresh(template)
    return template


async def delete_template(session: AsyncSession, template_id: str, *, customer_id: str | None = None) -> None:
    """Soft delete."""
    template = await get_template(session, template_id, customer_id=customer_id)
    template.deleted_at = models.utcnow()
    await session.commit()
    logger.info(f"Deleted notification template {template_id}")


async def send_template(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    template_id: str,
    *,
    customer_id: str,
    user_ids: list[str] | None = None,
    sender_id: str | None = None,
) -> SendResult:
    """Send a template to explicit users or to every live user of the customer.

    Raises:
        NotFoundError: Template missing or owned by another customer
        ValidationError: Nobody to send to
    """
    template = await get_template(session, template_id)
    if template.customer_id and template.customer_id != customer_id:
        raise NotFoundError("Notification template not found")

    if user_ids:
        stmt = select(models.User.id).where(
            models.User.id.in_(user_ids),
            models.User.customer_id == customer_id,
            models.User.deleted_at.is_(None),
        )
    else:
        stmt = select(models.User.id).where(
            models.User.customer_id == customer_id,
            models.User.deleted_at.is_(None),
        )
    targets = list((await session.execute(stmt)).scalars().all())
    if not targets:
        raise ValidationError("No target users specified for notification")

    # One session cannot run statements concurrently, so inserts go one at a time
    for user_id in targets:
        await create_notification(
            session,
            broadcaster,
            user_id=user_id,
            customer_id=customer_id,
            title=template.title,
            message=template.message,
            type=template.type,
            channel=template.channel,
            template_id=template.id,
            metadata=template.metadata_,
            sender_id=sender_id,
            generated_by="notification template",
        )

    logger.info(f"Sent template {template.id} to {len(targets)} users")
    return SendResult(
        template_id=template.id,
        sent=len(targets),
        message=f'Notification template "{template.title}" sent successfully',
    )


async def template_history(
    session: AsyncSession,
    template_id: str,
    *,
    params: PageParams,
    customer_id: str | None = None,
) -> Page[models.Notification]:
    """Notifications produced from a template, newest first."""
    await get_template(session, template_id, customer_id=customer_id)
    N = models.Notification
    stmt = select(N).where(N.template_id == template_id).order_by(N.created_at.desc(), N.id.desc())
    return await paginate(session, stmt, params)
