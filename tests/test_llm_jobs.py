"""Tests for LLM job listing, cancellation and statistics."""

from datetime import timedelta

import pytest

from baseplate import models
from baseplate.errors import ConflictError, ForbiddenError, NotFoundError
from baseplate.pagination import PageParams
from baseplate.services import llm_jobs as service


async def add_jobs(session, world):
    now = models.utcnow()
    jobs = [
        models.LlmJob(customer_id=world.acme.id, user_id=world.bob.id, feature_slug="summary", status="queued"),
        models.LlmJob(
            customer_id=world.acme.id,
            feature_slug="summary",
            status="completed",
            started_at=now - timedelta(seconds=30),
            completed_at=now - timedelta(seconds=10),
        ),
        models.LlmJob(customer_id=world.globex.id, feature_slug="translate", status="running"),
        models.LlmJob(customer_id=None, user_id=world.admin.id, status="error"),
    ]
    session.add_all(jobs)
    await session.commit()
    return jobs


async def test_list_filters(session, world):
    await add_jobs(session, world)

    page = await service.list_jobs(session, params=PageParams(), customer_id=world.acme.id)
    assert page.meta.total == 2

    page = await service.list_jobs(session, params=PageParams(), statuses=["running", "error"])
    assert {j.status for j in page.data} == {"running", "error"}

    page = await service.list_jobs(session, params=PageParams(), feature_slug="translate")
    assert [j.customer_id for j in page.data] == [world.globex.id]

    page = await service.list_jobs(
        session, params=PageParams(), created_from=models.utcnow() + timedelta(hours=1)
    )
    assert page.data == []


async def test_get_job_access(session, world):
    queued, _, running, system = await add_jobs(session, world)
    bob, carol, admin = world.ctx(world.bob), world.ctx(world.carol), world.ctx(world.admin)

    assert (await service.get_job(session, bob, queued.id)).id == queued.id
    with pytest.raises(ForbiddenError):
        await service.get_job(session, carol, queued.id)
    with pytest.raises(ForbiddenError):
        await service.get_job(session, bob, system.id)
    assert (await service.get_job(session, admin, system.id)).status == "error"
    with pytest.raises(NotFoundError):
        await service.get_job(session, admin, "missing")


async def test_cancel_notifies_owner(session, world, broadcaster, recorder):
    queued, completed, _, _ = await add_jobs(session, world)

    job = await service.cancel_job(session, broadcaster, world.ctx(world.alice), queued.id)
    assert job.status == "cancelled"
    assert job.cancelled_at is not None

    notes = recorder.on(f"main-notifications:{world.bob.id}")
    assert notes[0]["payload"]["title"] == "Job Cancelled"
    assert notes[0]["payload"]["channel"] == "llm_jobs"

    with pytest.raises(ConflictError, match="terminal state"):
        await service.cancel_job(session, broadcaster, world.ctx(world.alice), completed.id)


async def test_stats(session, world):
    await add_jobs(session, world)

    stats = await service.job_stats(session, customer_id=world.acme.id)
    assert stats.total == 2
    assert stats.by_status["queued"] == 1
    assert stats.by_status["completed"] == 1
    assert stats.by_status["cancelled"] == 0
    assert stats.average_duration_seconds == 20.0
    assert stats.oldest_active_age_seconds is not None

    overall = await service.job_stats(session, window_hours=1)
    assert overall.total == 4
