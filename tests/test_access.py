"""Tests for tenant isolation and permission checks."""

import pytest

from baseplate.access import (
    UserContext,
    can_access_customer,
    ensure_customer_access,
    ensure_system_admin,
    has_permission,
    is_customer_owner,
    is_system_admin,
    require_customer,
    require_permission,
    with_active_customer,
)
from baseplate.errors import ForbiddenError, ValidationError


def make_ctx(permissions, role="customer_user", **extra):
    return UserContext(user_id="u1", customer_id="c1", role=role, permissions=permissions, **extra)


def test_permission_wildcards():
    assert has_permission(make_ctx(["*"]), "anything:at_all")
    assert has_permission(make_ctx(["customer:*"]), "customer:write")
    assert not has_permission(make_ctx(["customer:*"]), "users:manage")
    assert has_permission(make_ctx(["users:manage"]), "users:manage")
    assert not has_permission(make_ctx(["users:read"]), "users:manage")


def test_system_admin_by_role_or_flag():
    assert is_system_admin(make_ctx([], role="system_admin"))
    assert is_system_admin(make_ctx([], is_superadmin=True))
    assert not is_system_admin(make_ctx([]))
    with pytest.raises(ForbiddenError):
        ensure_system_admin(make_ctx([]))
    with pytest.raises(ForbiddenError, match="Missing permission: users:manage"):
        require_permission(make_ctx([]), "users:manage")


def test_active_customer_overrides_own():
    ctx = with_active_customer(make_ctx([]), "c2")
    assert ctx.effective_customer_id == "c2"
    assert require_customer(ctx) == "c2"

    with pytest.raises(ValidationError, match="No customer selected"):
        require_customer(UserContext(user_id="u", customer_id=None, role=None))


async def test_customer_access_rules(session, world):
    admin, cs, bob, carol = (world.ctx(u) for u in (world.admin, world.cs, world.bob, world.carol))

    assert await can_access_customer(session, admin, world.globex.id)
    assert await can_access_customer(session, bob, world.acme.id)
    assert not await can_access_customer(session, bob, world.globex.id)
    assert await can_access_customer(session, cs, world.acme.id)
    assert not await can_access_customer(session, cs, world.globex.id)
    assert not await can_access_customer(session, carol, None)

    with pytest.raises(ForbiddenError):
        await ensure_customer_access(session, carol, world.acme.id)


async def test_customer_owner(session, world):
    assert await is_customer_owner(session, world.ctx(world.alice))
    assert not await is_customer_owner(session, world.ctx(world.bob))
