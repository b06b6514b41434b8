"""End-to-end tests through the HTTP API."""

from sqlalchemy import select

from baseplate import models
from catalog import roles

from .conftest import auth_headers


async def test_health_and_index(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "segments" in (await client.get("/")).json()["endpoints"]


async def test_authentication_required(client):
    response = await client.get("/notifications")
    assert response.status_code == 401
    assert response.json() == {"error": "authentication_error", "detail": "Authentication required"}

    response = await client.get("/notifications", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


async def test_token_subject_resolves_auth_user(client, world):
    from baseplate.auth import create_access_token

    token = create_access_token("", sub="auth-alice")
    response = await client.get("/notifications/unread-count", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


async def test_notification_flow(client, world, broadcaster, headers):
    response = await client.post(
        "/notifications",
        json={"title": "Hi Bob", "message": "<b>hello</b>", "user_id": world.bob.id},
        headers=headers(world.alice),
    )
    assert response.status_code == 201
    created = response.json()
    assert created["sender_id"] == world.alice.id
    assert created["is_read"] is False

    response = await client.get("/notifications/unread-count", headers=headers(world.bob))
    assert response.json() == {"count": 1}

    response = await client.get("/notifications", headers=headers(world.bob))
    body = response.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["title"] == "Hi Bob"

    response = await client.post(f"/notifications/{created['id']}/read", headers=headers(world.bob))
    assert response.json()["is_read"] is True

    # Carol cannot see Bob's notification
    response = await client.get(f"/notifications/{created['id']}", headers=headers(world.carol))
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_plain_users_cannot_send_notifications(client, world, headers):
    response = await client.post(
        "/notifications",
        json={"title": "x", "message": "y", "user_id": world.alice.id},
        headers=headers(world.bob),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Missing permission: notifications:manage"


async def test_customer_header_is_checked(client, world, headers):
    response = await client.get("/segments", headers=headers(world.carol, **{"X-Customer-Id": world.acme.id}))
    assert response.status_code == 403

    response = await client.get("/segments", headers=headers(world.cs, **{"X-Customer-Id": world.acme.id}))
    assert response.status_code == 200

    # A user without a customer must pick one
    response = await client.get("/segments", headers=headers(world.admin))
    assert response.status_code == 400


async def test_impersonation(client, world, broadcaster, headers):
    response = await client.post(
        "/notifications",
        json={"title": "As admin", "message": "m", "user_id": world.bob.id},
        headers=headers(world.admin),
    )
    assert response.status_code == 201

    response = await client.get(
        "/notifications/unread-count",
        headers=headers(world.admin, **{"X-Impersonate-User-Id": world.bob.id}),
    )
    assert response.json() == {"count": 1}

    response = await client.get(
        "/notifications/unread-count",
        headers=headers(world.bob, **{"X-Impersonate-User-Id": world.alice.id}),
    )
    assert response.status_code == 403

    # CS reps may only impersonate users of their customers
    response = await client.get(
        "/notifications/unread-count",
        headers=headers(world.cs, **{"X-Impersonate-User-Id": world.carol.id}),
    )
    assert response.status_code == 403


async def test_impersonation_cannot_reach_admins_self_or_inactive(client, session, world, headers):
    role = (await session.execute(select(models.Role).where(models.Role.name == roles.SYSTEM_ADMIN))).scalar_one()
    acme_admin = models.User(email="root@acme.test", customer_id=world.acme.id, role_id=role.id)
    dormant = models.User(email="dormant@acme.test", customer_id=world.acme.id, role_id=world.bob.role_id, is_active=False)
    session.add_all([acme_admin, dormant])
    await session.commit()

    # A CS rep assigned to acme still cannot become an admin who sits in acme
    as_admin = headers(world.cs, **{"X-Impersonate-User-Id": acme_admin.id})
    response = await client.get("/notifications/unread-count", headers=as_admin)
    assert response.status_code == 403
    assert response.json()["detail"] == "Cannot impersonate system administrator"

    body = {"programmatic_name": "kiosk", "display_name": "Kiosk", "viewport_width": 1080, "viewport_height": 1920}
    response = await client.post("/device-profiles", json=body, headers=as_admin)
    assert response.status_code == 403

    response = await client.get(
        "/notifications/unread-count", headers=headers(world.admin, **{"X-Impersonate-User-Id": world.admin.id})
    )
    assert response.json()["detail"] == "Cannot impersonate yourself"

    response = await client.get(
        "/notifications/unread-count", headers=headers(world.cs, **{"X-Impersonate-User-Id": dormant.id})
    )
    assert response.json()["detail"] == "Cannot impersonate inactive user"

    response = await client.get(
        "/notifications/unread-count", headers=headers(world.alice, **{"X-Impersonate-User-Id": world.bob.id})
    )
    assert response.json()["detail"] == "No impersonation permissions"

    response = await client.get(
        "/notifications/unread-count", headers=headers(world.cs, **{"X-Impersonate-User-Id": "missing"})
    )
    assert response.json()["detail"] == "Target user not found"


async def test_segment_api(client, world, triggered, headers):
    response = await client.post(
        "/segments",
        json={"name": "Berlin software", "filters": {"location": "Berlin", "categories": ["Software"]}},
        headers=headers(world.alice),
    )
    assert response.status_code == 201
    segment = response.json()
    assert segment["status"] == "new"
    assert segment["company_count"] == 0
    assert triggered == [segment["id"]]

    response = await client.post("/segments", json={"name": "Berlin Software"}, headers=headers(world.bob))
    assert response.status_code == 409
    assert response.json()["detail"].startswith("A segment with this title already exists")

    response = await client.get(f"/segments/{segment['id']}/status", headers=headers(world.bob))
    assert response.json() == {"id": segment["id"], "status": "new"}

    response = await client.get(f"/segments/{segment['id']}", headers=headers(world.carol))
    assert response.status_code == 404

    response = await client.get("/segments/company-sizes", headers=headers(world.bob))
    assert {"label", "min", "max"} <= set(response.json()[0])

    response = await client.post(
        "/segments/preview-query", json={"country": "Germany"}, headers=headers(world.bob)
    )
    assert response.json()["query"] == ['location.country.name:"Germany"']


async def test_segment_processing_failure_maps_to_bad_gateway(client, world, functions, headers):
    import httpx

    functions.reply("search-companies", httpx.Response(500, json={"error": "down"}))
    response = await client.post(
        "/segments", json={"name": "Will fail", "filters": {"country": "France"}}, headers=headers(world.alice)
    )
    segment_id = response.json()["id"]

    response = await client.post(f"/segments/{segment_id}/process", headers=headers(world.alice))
    assert response.status_code == 502
    assert response.json()["error"] == "segment_processing_error"

    response = await client.get(f"/segments/{segment_id}/status", headers=headers(world.alice))
    assert response.json()["status"] == "failed"


async def test_capture_request_api(client, world, headers):
    response = await client.post(
        "/capture-requests", json={"requested_url": "notaurl"}, headers=headers(world.bob)
    )
    assert response.status_code == 400

    response = await client.post(
        "/capture-requests", json={"requested_url": "https://acme.test"}, headers=headers(world.bob)
    )
    assert response.status_code == 201
    request_id = response.json()["id"]

    response = await client.get("/capture-requests", params={"status": "queued"}, headers=headers(world.bob))
    assert [r["id"] for r in response.json()["data"]] == [request_id]

    response = await client.post(f"/capture-requests/{request_id}/cancel", headers=headers(world.bob))
    assert response.json()["status"] == "canceled"


async def test_device_profile_writes_are_admin_only(client, world, headers):
    body = {"programmatic_name": "kiosk", "display_name": "Kiosk", "viewport_width": 1080, "viewport_height": 1920}
    response = await client.post("/device-profiles", json=body, headers=headers(world.alice))
    assert response.status_code == 403

    response = await client.post("/device-profiles", json=body, headers=headers(world.admin))
    assert response.status_code == 201

    response = await client.get("/device-profiles", headers=headers(world.bob))
    assert "kiosk" in {p["programmatic_name"] for p in response.json()}


async def test_validation_errors_use_fastapi_shape(client, world):
    response = await client.post("/segments", json={}, headers=auth_headers(world.alice))
    assert response.status_code == 422


async def test_system_modules_catalog(client, world, headers):
    response = await client.get("/system-modules", headers=headers(world.bob))
    assert response.status_code == 200
    modules = {m["name"]: m for m in response.json()}
    assert set(modules) == {"UserManagement", "CustomerManagement", "RoleManagement", "Documents"}
    assert modules["RoleManagement"]["enabled"] is False
    assert modules["Documents"]["permissions"][-1] == {
        "name": "Documents:deleteArticles",
        "label": "Delete Articles",
        "order": 8,
    }


async def test_me_reports_impersonation(client, world, headers):
    response = await client.get("/users/me", headers=headers(world.bob))
    body = response.json()
    assert body["id"] == world.bob.id
    assert body["role_name"] == "customer_user"
    assert body["is_impersonating"] is False
    assert body["impersonated_by"] is None

    response = await client.get("/users/me", headers=headers(world.admin, **{"X-Impersonate-User-Id": world.bob.id}))
    body = response.json()
    assert body["id"] == world.bob.id
    assert body["is_impersonating"] is True
    assert body["impersonated_by"]["id"] == world.admin.id

    response = await client.patch("/users/me", json={"last_name": "Builder"}, headers=headers(world.bob))
    assert response.json()["last_name"] == "Builder"


async def test_user_management_api(client, world, headers):
    response = await client.get("/users", headers=headers(world.alice))
    assert response.status_code == 200
    assert {u["email"] for u in response.json()["data"]} == {"alice@acme.test", "bob@acme.test"}

    response = await client.get("/users", params={"customer_id": world.globex.id}, headers=headers(world.alice))
    assert response.status_code == 403
    assert response.json()["detail"] == "You can only access users from your own customer."

    response = await client.get("/users", headers=headers(world.bob))
    assert response.status_code == 403

    # Non-admins always create inside their own customer
    response = await client.post("/users", json={"email": "erin@acme.test"}, headers=headers(world.alice))
    assert response.status_code == 201
    erin = response.json()
    assert erin["customer_id"] == world.acme.id

    response = await client.get(f"/users/{world.carol.id}", headers=headers(world.alice))
    assert response.status_code == 404

    response = await client.delete(f"/users/{world.alice.id}", headers=headers(world.alice))
    assert response.status_code == 400

    response = await client.delete(f"/users/{erin['id']}", headers=headers(world.alice))
    assert response.status_code == 204


async def test_role_management_is_not_granted_by_ownership(client, world, headers):
    response = await client.get("/roles", headers=headers(world.alice))
    assert response.status_code == 403

    response = await client.get("/roles", headers=headers(world.admin))
    roles_by_name = {r["name"]: r for r in response.json()}
    assert roles_by_name["customer_admin"]["is_system_role"] is True

    system_role = roles_by_name["customer_user"]["id"]
    response = await client.put(
        f"/roles/{system_role}/permissions", json={"permissions": []}, headers=headers(world.admin)
    )
    assert response.status_code == 403

    response = await client.post(
        "/roles", json={"name": "Writer", "permissions": ["Documents:createArticles"]}, headers=headers(world.admin)
    )
    assert response.status_code == 201
    role_id = response.json()["id"]
    response = await client.put(
        f"/roles/{role_id}/permissions", json={"permissions": ["Documents:editArticles"]}, headers=headers(world.admin)
    )
    assert response.json() == {"message": f"Permissions updated for role ID {role_id}"}


async def test_customer_api(client, world, headers):
    response = await client.get("/customers", headers=headers(world.carol))
    assert [c["name"] for c in response.json()["data"]] == ["Globex"]

    response = await client.post("/customers", json={"name": "Initech"}, headers=headers(world.alice))
    assert response.status_code == 403

    response = await client.post(
        "/customers", json={"name": "Initech", "customer_success_ids": [world.cs.id]}, headers=headers(world.admin)
    )
    assert response.status_code == 201
    initech = response.json()["id"]

    # The assigned CS rep now sees it
    response = await client.get(f"/customers/{initech}", headers=headers(world.cs))
    assert response.status_code == 200
    response = await client.get(f"/customers/{initech}", headers=headers(world.carol))
    assert response.status_code == 404
