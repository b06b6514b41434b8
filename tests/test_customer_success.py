"""Tests for customer success assignments."""

import pytest

from baseplate.errors import ConflictError, NotFoundError
from baseplate.services import customer_success as service


async def test_assign_and_list(session, world):
    assignment = await service.create_assignment(session, user_id=world.cs.id, customer_id=world.globex.id)
    assert assignment.customer.name == "Globex"
    assert assignment.user.email == "cs@baseplate.test"

    assignments = await service.list_assignments(session, user_id=world.cs.id)
    assert {a.customer_id for a in assignments} == {world.acme.id, world.globex.id}

    assert await service.is_assigned(session, user_id=world.cs.id, customer_id=world.globex.id)


async def test_duplicate_assignment_conflicts(session, world):
    with pytest.raises(ConflictError, match="CS rep is already assigned to this customer"):
        await service.create_assignment(session, user_id=world.cs.id, customer_id=world.acme.id)


async def test_only_cs_reps_can_be_assigned(session, world):
    with pytest.raises(ConflictError, match="customer success role"):
        await service.create_assignment(session, user_id=world.bob.id, customer_id=world.globex.id)
    with pytest.raises(NotFoundError):
        await service.create_assignment(session, user_id=world.cs.id, customer_id="missing")


async def test_remove_assignment(session, world):
    await service.remove_assignment_for(session, user_id=world.cs.id, customer_id=world.acme.id)
    assert not await service.is_assigned(session, user_id=world.cs.id, customer_id=world.acme.id)

    with pytest.raises(NotFoundError, match="No assignment found for this CS rep and customer"):
        await service.remove_assignment_for(session, user_id=world.cs.id, customer_id=world.acme.id)
    with pytest.raises(NotFoundError):
        await service.remove_assignment(session, "missing")
