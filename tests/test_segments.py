"""Tests for segment lifecycle and company search processing."""

import httpx
import pytest

from baseplate.errors import ConflictError, NotFoundError, ValidationError
from baseplate.pagination import PageParams
from baseplate.services import segments as service
from baseplate.services.segment_filters import SegmentFilters

FOUND = {
    "data": [
        {
            "id": "org-1",
            "name": "Foo GmbH",
            "homepageUri": "https://www.foo.de/about",
            "location": {"country": {"name": "Germany"}, "city": {"name": "Berlin"}},
            "categories": [{"name": "Software"}],
            "nbEmployees": 40,
        },
        {"id": "org-2", "name": "Bar AG", "homepageUri": "bar.de"},
        # No domain, skipped
        {"id": "org-3", "name": "Nameless"},
    ],
    "totalCount": 250,
}


async def make_segment(session, world, broadcaster, name="German software", **filters):
    return await service.create_segment(
        session,
        broadcaster,
        customer_id=world.acme.id,
        user_id=world.alice.id,
        name=name,
        filters=SegmentFilters(**(filters or {"country": "Germany", "categories": ["Software"]})),
    )


async def test_create_validates_and_triggers(session, world, broadcaster, recorder):
    started = []
    segment = await service.create_segment(
        session,
        broadcaster,
        customer_id=world.acme.id,
        user_id=world.alice.id,
        name="  Berlin   startups ",
        filters=SegmentFilters(location="Berlin"),
        trigger=started.append,
    )
    assert segment.name == "Berlin startups"
    assert segment.status == "new"
    assert segment.list_type == "segment"
    assert started == [segment.id]
    assert recorder.on(f"main-notifications:{world.alice.id}")[0]["payload"]["title"] == "Segment Created"

    with pytest.raises(ConflictError, match="A segment with this title already exists"):
        await make_segment(session, world, broadcaster, name="berlin STARTUPS")
    with pytest.raises(ValidationError, match="at least 3"):
        await make_segment(session, world, broadcaster, name="ab")
    with pytest.raises(ValidationError, match="at most 100"):
        await make_segment(session, world, broadcaster, name="x" * 101)


async def test_same_name_allowed_for_other_customer_and_after_delete(session, world, broadcaster):
    segment = await make_segment(session, world, broadcaster)
    await service.create_segment(
        session, broadcaster, customer_id=world.globex.id, user_id=None,
        name="German software", filters=SegmentFilters(country="Germany"),
    )
    await service.delete_segment(session, segment.id, customer_id=world.acme.id)
    with pytest.raises(NotFoundError):
        await service.get_segment(session, segment.id, customer_id=world.acme.id)
    await make_segment(session, world, broadcaster)


async def test_process_attaches_found_companies(session, world, broadcaster, functions, functions_client, recorder):
    functions.reply("search-companies", FOUND)
    segment = await make_segment(session, world, broadcaster)

    result = await service.process_segment(session, functions_client, broadcaster, segment.id)

    assert result.status == "completed"
    assert result.companies_added == 2
    assert result.total_available == 250
    payload = functions.payloads("search-companies")[0]
    assert payload["query"] == ['location.country.name:"Germany"', 'categories.name:"Software"']

    page = await service.list_segment_companies(session, segment.id, customer_id=world.acme.id, params=PageParams())
    assert [(c.name, c.domain) for c in page.data] == [("Bar AG", "bar.de"), ("Foo GmbH", "foo.de")]
    assert page.data[1].city == "Berlin"

    listed = await service.list_segments(session, customer_id=world.acme.id, params=PageParams())
    assert [(s.segment.id, s.company_count) for s in listed.data] == [(segment.id, 2)]

    titles = [m["payload"]["title"] for m in recorder.on(f"main-notifications:{world.alice.id}")]
    assert titles == ["Segment Created", "Segment Processing Started", "Segment Ready"]

    # Processing is claimed once
    again = await service.process_segment(session, functions_client, broadcaster, segment.id)
    assert again.message == "Segment already processed"
    assert len(functions.payloads("search-companies")) == 1


async def test_companies_are_shared_between_segments(session, world, broadcaster, functions, functions_client):
    functions.reply("search-companies", FOUND)
    first = await make_segment(session, world, broadcaster, name="First")
    second = await make_segment(session, world, broadcaster, name="Second")
    await service.process_segment(session, functions_client, broadcaster, first.id)
    await service.process_segment(session, functions_client, broadcaster, second.id)

    counts = await service.company_counts(session, [first.id, second.id])
    assert counts == {first.id: 2, second.id: 2}


async def test_failed_search_marks_segment_failed(session, world, broadcaster, functions, functions_client):
    functions.reply("search-companies", httpx.Response(503, json={"error": "search unavailable"}))
    segment = await make_segment(session, world, broadcaster)

    with pytest.raises(service.SegmentProcessingError):
        await service.process_segment(session, functions_client, broadcaster, segment.id)

    assert len(functions.payloads("search-companies")) == 3
    segment = await service.get_segment(session, segment.id, customer_id=world.acme.id)
    assert segment.status == "failed"
    assert "search unavailable" in segment.error_message


async def test_loose_search_records_are_tolerated(session, world, broadcaster, functions, functions_client):
    functions.reply(
        "search-companies",
        {
            "data": [
                {"name": "Loose SA", "homepageUri": "loose.fr", "location": "Paris", "categories": ["Retail"]},
                {"name": "Odd Ltd", "homepageUri": "odd.co.uk", "location": {"city": "Leeds", "country": None}},
                "not-a-record",
            ],
            "totalCount": "many",
        },
    )
    segment = await make_segment(session, world, broadcaster)

    result = await service.process_segment(session, functions_client, broadcaster, segment.id)

    assert result.status == "completed"
    assert result.total_available == 2
    page = await service.list_segment_companies(session, segment.id, customer_id=world.acme.id, params=PageParams())
    by_name = {c.name: c for c in page.data}
    assert by_name["Loose SA"].city is None
    assert by_name["Loose SA"].industry == "Retail"
    assert by_name["Odd Ltd"].city == "Leeds"


async def test_malformed_search_body_marks_segment_failed(session, world, broadcaster, functions, functions_client):
    functions.reply("search-companies", {"data": {"name": "not a list"}})
    segment = await make_segment(session, world, broadcaster)

    with pytest.raises(service.SegmentProcessingError, match="Unexpected response shape"):
        await service.process_segment(session, functions_client, broadcaster, segment.id)

    segment = await service.get_segment(session, segment.id, customer_id=world.acme.id)
    assert segment.status == "failed"
    assert segment.processed_at is not None


async def test_unexpected_errors_mark_segment_failed(session, world, broadcaster, functions_client, monkeypatch):
    async def broken_search(*args, **kwargs):
        raise KeyError("location")

    monkeypatch.setattr(service, "search_companies", broken_search)
    segment = await make_segment(session, world, broadcaster)

    with pytest.raises(service.SegmentProcessingError):
        await service.process_segment(session, functions_client, broadcaster, segment.id)

    segment = await service.get_segment(session, segment.id, customer_id=world.acme.id)
    assert segment.status == "failed"
    assert "location" in segment.error_message


async def test_empty_filters_fail_processing(session, world, broadcaster, functions_client):
    segment = await service.create_segment(
        session, broadcaster, customer_id=world.acme.id, user_id=None,
        name="Everything", filters=SegmentFilters(personas=["CTO"]),
    )
    with pytest.raises(service.SegmentProcessingError, match="No valid search clauses"):
        await service.process_segment(session, functions_client, broadcaster, segment.id)


async def test_new_filters_reset_segment(session, world, broadcaster, functions, functions_client):
    functions.reply("search-companies", FOUND)
    segment = await make_segment(session, world, broadcaster)
    await service.process_segment(session, functions_client, broadcaster, segment.id)

    started = []
    renamed = await service.update_segment(
        session, segment.id, customer_id=world.acme.id, name="Renamed", trigger=started.append
    )
    assert renamed.status == "completed"
    assert started == []

    updated = await service.update_segment(
        session, segment.id, customer_id=world.acme.id,
        filters=SegmentFilters(country="France"), trigger=started.append,
    )
    assert updated.status == "new"
    assert updated.filters["country"] == "France"
    assert started == [segment.id]
    assert (await service.company_counts(session, [segment.id])) == {segment.id: 0}


async def test_wait_for_segment(session_factory, session, world, broadcaster, functions, functions_client):
    functions.reply("search-companies", FOUND)
    segment = await make_segment(session, world, broadcaster)

    status = await service.wait_for_segment(
        session_factory, segment.id, customer_id=world.acme.id, interval=0.01, timeout=0.03
    )
    assert status == "new"

    await service.process_segment(session, functions_client, broadcaster, segment.id)
    status = await service.wait_for_segment(session_factory, segment.id, customer_id=world.acme.id)
    assert status == "completed"

    with pytest.raises(NotFoundError):
        await service.wait_for_segment(session_factory, segment.id, customer_id=world.globex.id)


async def test_worker_runs_in_background(session_factory, session, world, broadcaster, functions, functions_client):
    functions.reply("search-companies", FOUND)
    worker = service.SegmentWorker(session_factory, functions_client, broadcaster)
    segment = await make_segment(session, world, broadcaster)

    worker.trigger(segment.id)
    await worker.drain()

    assert await service.get_segment_status(session, segment.id, customer_id=world.acme.id) == "completed"


async def test_worker_swallows_crashes(session_factory, broadcaster, functions_client, monkeypatch):
    async def crash(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(service, "process_segment", crash)
    worker = service.SegmentWorker(session_factory, functions_client, broadcaster)

    task = worker.trigger("some-segment")
    await worker.drain()

    assert task.exception() is None
    assert task.result() is None
