"""Notification inbox and admin notification endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from ..access import UserContext, ensure_customer_access, is_system_admin, require_customer
from ..auth import get_current_user, requires_permission
from ..db import get_session
from ..deps import get_broadcaster, page_params
from ..pagination import PageParams
from ..schemas import (
    CountResponse,
    CreateNotificationRequest,
    MarkManyRequest,
    NotificationOut,
    PageOut,
    page_out,
)
from ..services import notifications as service


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PageOut[NotificationOut])
async def list_my_notifications(
    type: str | None = None,
    is_read: bool | None = None,
    channel: str | None = None,
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    page = await service.list_notifications(
        session,
        user_id=ctx.user_id,
        params=params,
        type=type,
        is_read=is_read,
        channel=channel,
    )
    return page_out(page, NotificationOut.model_validate)


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CountResponse:
    return CountResponse(count=await service.unread_count(session, ctx.user_id))


@router.get("/admin", response_model=PageOut[NotificationOut])
async def list_admin_notifications(
    user_ids: list[str] | None = Query(default=None),
    customer_ids: list[str] | None = Query(default=None),
    sender_ids: list[str] | None = Query(default=None),
    types: list[str] | None = Query(default=None),
    channels: list[str] | None = Query(default=None),
    is_read: bool | None = None,
    search: str | None = None,
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(requires_permission("notifications:manage")),
    session: AsyncSession = Depends(get_session),
):
    """Notifications across users. Non-admins only see their active customer."""
    if not is_system_admin(ctx):
        customer_ids = [require_customer(ctx)]
    page = await service.list_admin_notifications(
        session,
        params=params,
        user_ids=user_ids,
        customer_ids=customer_ids,
        sender_ids=sender_ids,
        types=types,
        is_read=is_read,
        channels=channels,
        search=search,
    )
    return page_out(page, NotificationOut.model_validate)


@router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED)
async def create_notification(
    request: CreateNotificationRequest,
    ctx: UserContext = Depends(requires_permission("notifications:manage")),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> NotificationOut:
    if request.customer_id:
        await ensure_customer_access(session, ctx, request.customer_id)
    notification = await service.create_notification(
        session,
        broadcaster,
        title=request.title,
        message=request.message,
        user_id=request.user_id,
        customer_id=request.customer_id,
        type=request.type,
        channel=request.channel,
        template_id=request.template_id,
        metadata=request.metadata,
        sender_id=ctx.actor_id or ctx.user_id,
        generated_by=request.generated_by,
    )
    return NotificationOut.model_validate(notification)


@router.post("/read-all", response_model=CountResponse)
async def mark_all_as_read(
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> CountResponse:
    updated = await service.mark_all_as_read(session, broadcaster, user_id=ctx.user_id)
    return CountResponse(count=updated)


@router.post("/read", response_model=CountResponse)
async def mark_many_as_read(
    request: MarkManyRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> CountResponse:
    updated = await service.mark_many_as_read(
        session,
        broadcaster,
        user_id=ctx.user_id,
        notification_ids=request.ids,
    )
    return CountResponse(count=updated)


@router.get("/{notification_id}", response_model=NotificationOut)
async def get_notification(
    notification_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationOut:
    notification = await service.get_notification(session, user_id=ctx.user_id, notification_id=notification_id)
    return NotificationOut.model_validate(notification)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_as_read(
    notification_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> NotificationOut:
    notification = await service.mark_as_read(
        session,
        broadcaster,
        user_id=ctx.user_id,
        notification_id=notification_id,
    )
    return NotificationOut.model_validate(notification)
