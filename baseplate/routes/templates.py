"""Notification template endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from ..access import UserContext, ensure_customer_access, is_system_admin, require_customer
from ..auth import get_current_user, requires_permission
from ..db import get_session
from ..deps import get_broadcaster, page_params
from ..pagination import PageParams
from ..schemas import (
    CreateTemplateRequest,
    NotificationOut,
    PageOut,
    SendTemplateRequest,
    SendTemplateResponse,
    TemplateOut,
    UpdateTemplateRequest,
    page_out,
)
from ..services import templates as service

router = APIRouter(prefix="/notification-templates", tags=["notification-templates"])

manage_templates = requires_permission("notifications:manage")


def _scope(ctx: UserContext) -> str | None:
    """System admins see every template; everyone else only their customer's."""
    return None if is_system_admin(ctx) else require_customer(ctx)


@router.get("", response_model=PageOut[TemplateOut])
async def list_templates(
    customer_id: str | None = None,
    types: list[str] | None = Query(default=None),
    channels: list[str] | None = Query(default=None),
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    scope = _scope(ctx) or customer_id
    page = await service.list_templates(session, params=params, customer_id=scope, types=types, channels=channels)
    return page_out(page, TemplateOut.model_validate)


@router.post("", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
async def create_template(
    request: CreateTemplateRequest,
    ctx: UserContext = Depends(manage_templates),
    session: AsyncSession = Depends(get_session),
) -> TemplateOut:
    customer_id = request.customer_id or ctx.effective_customer_id
    if customer_id:
        await ensure_customer_access(session, ctx, customer_id)
    template = await service.create_template(
        session,
        title=request.title,
        message=request.message,
        customer_id=customer_id,
        type=request.type,
        channel=request.channel,
        metadata=request.metadata,
        created_by=ctx.user_id,
    )
    return TemplateOut.model_validate(template)


@router.get("/{template_id}", response_model=TemplateOut)
async def get_template(
    template_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> TemplateOut:
    template = await service.get_template(session, template_id, customer_id=_scope(ctx))
    return TemplateOut.model_validate(template)


@router.patch("/{template_id}", response_model=TemplateOut)
async def update_template(
    template_id: str,
    request: UpdateTemplateRequest,
    ctx: UserContext = Depends(manage_templates),
    session: AsyncSession = Depends(get_session),
) -> TemplateOut:
    template = await service.update_template(
        session,
        template_id,
        request.model_dump(exclude_unset=True),
        customer_id=_scope(ctx),
    )
    return TemplateOut.model_validate(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    ctx: UserContext = Depends(manage_templates),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await service.delete_template(session, template_id, customer_id=_scope(ctx))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/send", response_model=SendTemplateResponse)
async def send_template(
    template_id: str,
    request: SendTemplateRequest,
    ctx: UserContext = Depends(manage_templates),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> SendTemplateResponse:
    customer_id = request.customer_id or require_customer(ctx)
    await ensure_customer_access(session, ctx, customer_id)
    result = await service.send_template(
        session,
        broadcaster,
        template_id,
        customer_id=customer_id,
        user_ids=request.user_ids,
        sender_id=ctx.actor_id or ctx.user_id,
    )
    return SendTemplateResponse(template_id=result.template_id, sent=result.sent, message=result.message)


@router.get("/{template_id}/history", response_model=PageOut[NotificationOut])
async def template_history(
    template_id: str,
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(manage_templates),
    session: AsyncSession = Depends(get_session),
):
    page = await service.template_history(session, template_id, params=params, customer_id=_scope(ctx))
    return page_out(page, NotificationOut.model_validate)
