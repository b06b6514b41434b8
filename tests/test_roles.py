"""Tests for roles, the permission catalog and system modules."""

import pytest

from baseplate.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from baseplate.services import roles as service
from catalog.system_modules import SYSTEM_MODULES, module_permissions


def test_module_permissions_are_namespaced_and_ordered():
    users = next(m for m in SYSTEM_MODULES if m["name"] == "UserManagement")
    assert users["enabled"] is True
    assert [(p["name"], p["order"]) for p in users["permissions"]][:2] == [
        ("UserManagement:viewUsers", 1),
        ("UserManagement:createUser", 2),
    ]
    names = [p["name"] for p in module_permissions()]
    assert len(names) == len(set(names))
    assert "RoleManagement:deleteRoles" in names


async def test_catalog_holds_module_permissions(session, world):
    names = {p.name for p in await service.list_permissions(session)}
    assert {"Documents:viewArticles", "notifications:manage"} <= names


async def test_system_roles_are_protected(session, world):
    admin_role = await service.get_role_by_name(session, "system_admin")
    assert admin_role.is_system_role

    with pytest.raises(ForbiddenError, match='Cannot modify system role "system_admin"'):
        await service.update_role(session, admin_role.id, {"description": "mine now"})
    with pytest.raises(ForbiddenError):
        await service.set_role_permissions(session, admin_role.id, [])
    with pytest.raises(ForbiddenError):
        await service.delete_role(session, admin_role.id)


async def test_custom_role_lifecycle(session, world):
    role = await service.create_role(
        session, name="Editor", permissions=["Documents:viewArticles", "Documents:editArticles", "Documents:viewArticles"]
    )
    assert role.permissions == ["Documents:viewArticles", "Documents:editArticles"]
    assert not role.is_system_role

    with pytest.raises(ConflictError, match="Role with name already exists"):
        await service.create_role(session, name="Editor")
    with pytest.raises(ValidationError, match="Invalid permission names: Documents:fly, nope"):
        await service.create_role(session, name="Pilot", permissions=["Documents:fly", "nope"])

    role = await service.set_role_permissions(session, role.id, ["UserManagement:viewUsers"])
    assert role.permissions == ["UserManagement:viewUsers"]

    role = await service.update_role(session, role.id, {"name": "Reviewer"})
    assert role.name == "Reviewer"
    assert [r.name for r in await service.list_roles(session, search="review")] == ["Reviewer"]

    await service.delete_role(session, role.id)
    with pytest.raises(NotFoundError, match="No role with given ID exists"):
        await service.get_role(session, role.id)


async def test_roles_in_use_cannot_be_deleted(session, world):
    from baseplate import models

    role = await service.create_role(session, name="Auditor")
    user = await session.get(models.User, world.carol.id)
    user.role_id = role.id
    await session.commit()

    with pytest.raises(ConflictError, match="Role is assigned to users"):
        await service.delete_role(session, role.id)
