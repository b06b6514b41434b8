"""Tests for notification templates."""

import pytest

from baseplate.errors import ConflictError, NotFoundError, ValidationError
from baseplate.pagination import PageParams
from baseplate.services import templates as service


async def test_create_sanitizes_and_rejects_duplicate_titles(session, world):
    template = await service.create_template(
        session,
        title="  Release notes ",
        message='<h5>New</h5><img src="https://cdn.test/x.png"><script>x()</script>',
        customer_id=world.acme.id,
        metadata={"version": 2},
        created_by=world.alice.id,
    )
    assert template.title == "Release notes"
    assert "<h5>New</h5>" in template.message
    assert "<script>" not in template.message
    assert template.metadata_ == {"version": 2}

    with pytest.raises(ConflictError, match="A notification template with this title already exists"):
        await service.create_template(session, title="Release notes", message="again", customer_id=world.acme.id)


async def test_list_filters_and_soft_delete(session, world):
    a = await service.create_template(session, title="A", message="m", customer_id=world.acme.id, channel="billing")
    await service.create_template(session, title="B", message="m", customer_id=world.acme.id, type=["email"])
    await service.create_template(session, title="C", message="m", customer_id=world.globex.id)

    page = await service.list_templates(session, params=PageParams(), customer_id=world.acme.id)
    assert {t.title for t in page.data} == {"A", "B"}

    page = await service.list_templates(session, params=PageParams(), types=["email"])
    assert [t.title for t in page.data] == ["B"]

    page = await service.list_templates(session, params=PageParams(), channels=["billing"])
    assert [t.title for t in page.data] == ["A"]

    await service.delete_template(session, a.id)
    with pytest.raises(NotFoundError, match="Notification template not found"):
        await service.get_template(session, a.id)
    page = await service.list_templates(session, params=PageParams(), customer_id=world.acme.id)
    assert [t.title for t in page.data] == ["B"]


async def test_update_is_partial_and_scoped(session, world):
    template = await service.create_template(session, title="T", message="m", customer_id=world.acme.id)

    updated = await service.update_template(
        session, template.id, {"message": "<p>new</p>", "metadata": {"k": 1}}, customer_id=world.acme.id
    )
    assert updated.title == "T"
    assert updated.message == "<p>new</p>"
    assert updated.metadata_ == {"k": 1}

    with pytest.raises(NotFoundError):
        await service.update_template(session, template.id, {"title": "X"}, customer_id=world.globex.id)


async def test_send_to_all_users_of_customer(session, world, broadcaster, recorder):
    template = await service.create_template(session, title="Heads up", message="<p>Hi</p>", customer_id=world.acme.id)

    result = await service.send_template(
        session, broadcaster, template.id, customer_id=world.acme.id, sender_id=world.alice.id
    )

    assert result.sent == 2
    assert result.message == 'Notification template "Heads up" sent successfully'
    history = await service.template_history(session, template.id, params=PageParams())
    assert {n.user_id for n in history.data} == {world.alice.id, world.bob.id}
    assert all(n.template_id == template.id for n in history.data)
    assert len(recorder.on(f"main-notifications:{world.bob.id}")) == 1


async def test_send_to_explicit_users_only_reaches_that_customer(session, world, broadcaster):
    template = await service.create_template(session, title="Only Bob", message="m")

    result = await service.send_template(
        session, broadcaster, template.id, customer_id=world.acme.id, user_ids=[world.bob.id, world.carol.id]
    )
    assert result.sent == 1


async def test_send_without_targets(session, world, broadcaster):
    template = await service.create_template(session, title="Nobody", message="m")
    with pytest.raises(ValidationError, match="No target users specified for notification"):
        await service.send_template(
            session, broadcaster, template.id, customer_id=world.acme.id, user_ids=[world.carol.id]
        )


async def test_send_rejects_template_of_other_customer(session, world, broadcaster):
    template = await service.create_template(session, title="Globex only", message="m", customer_id=world.globex.id)
    with pytest.raises(NotFoundError):
        await service.send_template(session, broadcaster, template.id, customer_id=world.acme.id)
