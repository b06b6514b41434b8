"""Tests for user management."""

import pytest
from sqlalchemy import select

from baseplate import models
from baseplate.access import with_active_customer
from baseplate.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from baseplate.pagination import PageParams
from baseplate.services import users as service


async def test_create_and_duplicate_email(session, world):
    alice = world.ctx(world.alice)
    user = await service.create_user(
        session,
        alice,
        email="dave@acme.test",
        customer_id=world.acme.id,
        role_id=world.bob.role_id,
        first_name="Dave",
    )
    assert user.role.name == "customer_user"
    assert user.customer_id == world.acme.id

    with pytest.raises(ConflictError, match="User with this email already exists"):
        await service.create_user(session, alice, email="DAVE@acme.test", customer_id=world.acme.id)


async def test_only_admins_hand_out_privileged_roles(session, world):
    with pytest.raises(ForbiddenError, match='"system_admin" role'):
        await service.create_user(
            session,
            world.ctx(world.alice),
            email="x@acme.test",
            customer_id=world.acme.id,
            role_id=world.admin.role_id,
        )

    user = await service.create_user(
        session, world.ctx(world.admin), email="cs2@baseplate.test", customer_id=None, role_id=world.cs.role_id
    )
    assert user.role.name == "customer_success"


async def test_listing_and_lookup_are_scoped(session, world):
    page = await service.list_users(session, params=PageParams(), customer_id=world.acme.id)
    assert {u.email for u in page.data} == {"alice@acme.test", "bob@acme.test"}
    page = await service.list_users(session, params=PageParams(), search="carol")
    assert [u.email for u in page.data] == ["carol@globex.test"]

    assert (await service.get_scoped_user(session, world.ctx(world.alice), world.bob.id)).id == world.bob.id
    assert (await service.get_scoped_user(session, world.ctx(world.cs), world.bob.id)).id == world.bob.id
    with pytest.raises(NotFoundError, match="No user with given ID exists"):
        await service.get_scoped_user(session, world.ctx(world.alice), world.carol.id)
    # A CS rep working on one customer does not reach into another
    cs_on_globex = with_active_customer(world.ctx(world.cs), world.globex.id)
    with pytest.raises(NotFoundError):
        await service.get_scoped_user(session, cs_on_globex, world.bob.id)


async def test_status_changes(session, world):
    alice = world.ctx(world.alice)
    bob = await service.update_user(session, alice, world.bob.id, {"is_active": False, "last_name": "Builder"})
    assert bob.is_active is False
    assert bob.last_name == "Builder"

    with pytest.raises(ValidationError, match="You cannot change your own status"):
        await service.update_user(session, alice, world.alice.id, {"is_active": False})

    admin = world.ctx(world.admin)
    with pytest.raises(ForbiddenError, match="system administrator or customer success user"):
        await service.update_user(session, admin, world.cs.id, {"is_active": False})


async def test_role_change_reloads_role(session, world):
    viewer = (await session.execute(select(models.Role).where(models.Role.name == "customer_viewer"))).scalar_one()
    bob = await service.update_user(session, world.ctx(world.alice), world.bob.id, {"role_id": viewer.id})
    assert bob.role.name == "customer_viewer"


async def test_soft_delete_rules(session, world):
    alice = world.ctx(world.alice)
    with pytest.raises(ValidationError, match="You cannot delete yourself."):
        await service.soft_delete_user(session, alice, world.alice.id)

    admin = world.ctx(world.admin)
    with pytest.raises(ConflictError, match="Not supported operation"):
        await service.soft_delete_user(session, admin, world.cs.id)
    with pytest.raises(ConflictError, match="Cannot delete user who is a customer owner"):
        await service.soft_delete_user(session, admin, world.alice.id)

    await service.soft_delete_user(session, alice, world.bob.id)
    bob = await session.get(models.User, world.bob.id)
    assert bob.email == "__deleted__bob@acme.test"
    assert bob.deleted_at is not None
    assert bob.is_active is False
    assert bob.role_id is None
    with pytest.raises(NotFoundError):
        await service.get_user(session, world.bob.id)

    # The address is free for a new account
    again = await service.create_user(session, alice, email="bob@acme.test", customer_id=world.acme.id)
    assert again.id != world.bob.id


async def test_profile_update_keeps_email(session, world):
    user = await service.update_profile(session, world.bob.id, {"first_name": "Robert", "email": "evil@globex.test"})
    assert user.first_name == "Robert"
    assert user.email == "bob@acme.test"
