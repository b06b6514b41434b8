"""LLM job monitoring endpoints."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from ..access import UserContext, is_system_admin, require_customer
from ..auth import get_current_user
from ..db import get_session
from ..deps import get_broadcaster, page_params
from ..pagination import PageParams
from ..schemas import JobStatsOut, LlmJobOut, PageOut, page_out
from ..services import llm_jobs as service

router = APIRouter(prefix="/llm-jobs", tags=["llm-jobs"])


def _scope(ctx: UserContext, customer_id: str | None) -> str | None:
    return customer_id if is_system_admin(ctx) else require_customer(ctx)


@router.get("", response_model=PageOut[LlmJobOut])
async def list_jobs(
    customer_id: str | None = None,
    statuses: list[str] | None = Query(default=None, alias="status"),
    feature_slug: str | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    page = await service.list_jobs(
        session,
        params=params,
        customer_id=_scope(ctx, customer_id),
        statuses=statuses,
        feature_slug=feature_slug,
        created_from=created_from,
        created_to=created_to,
    )
    return page_out(page, LlmJobOut.model_validate)


@router.get("/stats", response_model=JobStatsOut)
async def job_stats(
    customer_id: str | None = None,
    window_hours: int | None = Query(default=None, ge=1),
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> JobStatsOut:
    stats = await service.job_stats(session, customer_id=_scope(ctx, customer_id), window_hours=window_hours)
    return JobStatsOut(
        total=stats.total,
        by_status=stats.by_status,
        average_duration_seconds=stats.average_duration_seconds,
        oldest_active_age_seconds=stats.oldest_active_age_seconds,
    )


@router.get("/{job_id}", response_model=LlmJobOut)
async def get_job(
    job_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> LlmJobOut:
    return LlmJobOut.model_validate(await service.get_job(session, ctx, job_id))


@router.post("/{job_id}/cancel", response_model=LlmJobOut)
async def cancel_job(
    job_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> LlmJobOut:
    return LlmJobOut.model_validate(await service.cancel_job(session, broadcaster, ctx, job_id))
