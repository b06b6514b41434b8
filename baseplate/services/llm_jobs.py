"""LLM job tracking: listing, cancellation and queue statistics."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from .. import models
from ..access import UserContext, can_access_customer, is_system_admin
from ..errors import ConflictError, ForbiddenError, NotFoundError, ServiceError
from ..pagination import Page, PageParams, paginate
from .notifications import create_notification

logger = logging.getLogger(__name__)

JOB_STATUSES = ("queued", "running", "waiting_llm", "retrying", "completed", "error", "exhausted", "cancelled")
TERMINAL_STATUSES = frozenset({"completed", "error", "exhausted", "cancelled"})
ACTIVE_STATUSES = tuple(s for s in JOB_STATUSES if s not in TERMINAL_STATUSES)


@dataclass
class JobStats:
    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    average_duration_seconds: float | None = None
    oldest_active_age_seconds: float | None = None


async def list_jobs(
    session: AsyncSession,
    *,
    params: PageParams,
    customer_id: str | None = None,
    statuses: list[str] | None = None,
    feature_slug: str | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
) -> Page[models.LlmJob]:
    J = models.LlmJob
    stmt = select(J)
    if customer_id:
        stmt = stmt.where(J.customer_id == customer_id)
    if statuses:
        stmt = stmt.where(J.status.in_(statuses))
    if feature_slug:
        stmt = stmt.where(J.feature_slug == feature_slug)
    if created_from:
        stmt = stmt.where(J.created_at >= created_from)
    if created_to:
        stmt = stmt.where(J.created_at <= created_to)
    stmt = stmt.order_by(J.created_at.desc(), J.id)
    return await paginate(session, stmt, params)


async def get_job(session: AsyncSession, ctx: UserContext, job_id: str) -> models.LlmJob:
    job = await session.get(models.LlmJob, job_id)
    if job is None:
        raise NotFoundError("Job not found")
    if job.customer_id is None:
        if not is_system_admin(ctx) and job.user_id != ctx.user_id:
            raise ForbiddenError("You do not have permission to access this job")
    elif not await can_access_customer(session, ctx, job.customer_id):
        raise ForbiddenError("You do not have permission to access this job")
    return job


async def cancel_job(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    ctx: UserContext,
    job_id: str,
) -> models.LlmJob:
    """Cancel a job that has not reached a terminal state.

    Raises:
        ConflictError: If the job already finished
    """
    job = await get_job(session, ctx, job_id)
    if job.status in TERMINAL_STATUSES:
        raise ConflictError("Job is already in a terminal state and cannot be cancelled")

    now = models.utcnow()
    job.status = "cancelled"
    job.cancelled_at = now
    job.completed_at = now
    await session.commit()
    await session.refresh(job)
    logger.info(f"Job {job.id} cancelled by {ctx.user_id}")

    if job.user_id and job.user_id != ctx.user_id:
        try:
            await create_notification(
                session,
                broadcaster,
                user_id=job.user_id,
                customer_id=job.customer_id,
                title="Job Cancelled",
                message=f"Your {job.feature_slug or 'LLM'} job was cancelled.",
                channel="llm_jobs",
                metadata={"id": job.id, "status": job.status},
                sender_id=ctx.user_id,
                generated_by="system (llm job service)",
            )
        except ServiceError as e:
            logger.warning(f"Could not notify owner of job {job.id}: {e.detail}")
    return job


async def job_stats(
    session: AsyncSession,
    *,
    customer_id: str | None = None,
    window_hours: int | None = None,
) -> JobStats:
    """Per-status counts, average runtime of finished jobs and age of the oldest active job."""
    J = models.LlmJob
    conditions = []
    if customer_id:
        conditions.append(J.customer_id == customer_id)
    if window_hours:
        conditions.append(J.created_at >= models.utcnow() - timedelta(hours=window_hours))

    counts_stmt = select(J.status, func.count(J.id)).where(*conditions).group_by(J.status)
    by_status = {status: 0 for status in JOB_STATUSES}
    for status, count in (await session.execute(counts_stmt)).all():
        by_status[status] = count

    finished_stmt = select(J.started_at, J.completed_at).where(
        *conditions,
        J.started_at.is_not(None),
        J.completed_at.is_not(None),
    )
    durations = [
        (completed - started).total_seconds()
        for started, completed in (await session.execute(finished_stmt)).all()
        if completed >= started
    ]

    oldest_stmt = select(func.min(J.created_at)).where(*conditions, J.status.in_(ACTIVE_STATUSES))
    oldest = (await session.execute(oldest_stmt)).scalar_one_or_none()

    return JobStats(
        total=sum(by_status.values()),
        by_status=by_status,
        average_duration_seconds=round(sum(durations) / len(durations), 3) if durations else None,
        oldest_active_age_seconds=(models.utcnow() - oldest).total_seconds() if oldest else None,
    )
