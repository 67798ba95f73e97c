from httpx import ASGITransport

from domain_admin.client.collaborators import ApiClient
from domain_admin.client.guard import Decision, NavigationGuard, resolve_route
from domain_admin.client.session import SessionManager, SessionState
from domain_admin.client.token_store import MemoryTokenStore
from domain_admin.seed import DEFAULT_PERMISSIONS


async def register(client, username="alice", password="secret1"):
    response = await client.post("/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    })
    assert response.status_code == 201, response.text
    return response.json()


async def permission_id(client, headers, name):
    response = await client.get("/permissions/search", params={"keyword": name}, headers=headers)
    assert response.status_code == 200, response.text
    return next(node["id"] for node in response.json() if node["name"] == name)


async def test_health(async_client):
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_login_and_profile(async_client, login_as):
    headers = await login_as()

    response = await async_client.get("/auth/profile", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "admin"
    assert body["role"] == "admin"
    assert body["permissions"] == ["system.all"]


async def test_login_errors(async_client, admin_headers):
    response = await async_client.post("/auth/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_credentials"

    user = await register(async_client)
    response = await async_client.put(f"/users/{user['id']}/status", json={"status": 0}, headers=admin_headers)
    assert response.status_code == 200

    response = await async_client.post("/auth/login", json={"username": "alice", "password": "secret1"})
    assert response.status_code == 403
    assert response.json()["error"] == "account_disabled"


async def test_missing_or_bad_token(async_client):
    response = await async_client.get("/auth/profile")
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"

    response = await async_client.get("/auth/profile", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


async def test_regular_user_is_forbidden(async_client, login_as):
    await register(async_client)
    headers = await login_as("alice", "secret1")

    response = await async_client.get("/users", headers=headers)

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


async def test_permission_tree(async_client, admin_headers):
    response = await async_client.get("/permissions/tree", headers=admin_headers)

    assert response.status_code == 200
    roots = response.json()
    assert [node["name"] for node in roots] == ["dashboard", "system", "auth", "system.all"]
    system = roots[1]
    assert system["has_children"] is True
    assert [child["name"] for child in system["children"]] == [
        "system.users", "system.roles", "system.permissions", "audit.list",
    ]
    assert roots[3]["has_children"] is False
    assert roots[3]["children"] == []


async def test_validation_error_shape(async_client, admin_headers):
    response = await async_client.post("/roles", json={"name": "bad name!"}, headers=admin_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation"
    assert "display_name" in body["detail"]


async def test_role_lifecycle(async_client, admin_headers):
    response = await async_client.post(
        "/roles", json={"name": "auditor", "display_name": "Auditor"}, headers=admin_headers,
    )
    assert response.status_code == 201
    role_id = response.json()["id"]

    response = await async_client.post(
        "/roles", json={"name": "auditor", "display_name": "Again"}, headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_name"

    audit_list = await permission_id(async_client, admin_headers, "audit.list")
    user_list = await permission_id(async_client, admin_headers, "user.list")

    response = await async_client.put(
        f"/roles/{role_id}/permissions",
        json={"permission_ids": [audit_list, user_list]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["permission_ids"] == sorted([audit_list, user_list])

    response = await async_client.put(
        f"/roles/{role_id}/permissions",
        json={"permission_ids": [audit_list, 99999]},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "unknown_permission"

    response = await async_client.get(f"/roles/{role_id}/permissions", headers=admin_headers)
    assert response.json()["permission_ids"] == sorted([audit_list, user_list])

    response = await async_client.delete(f"/roles/{role_id}", headers=admin_headers)
    assert response.status_code == 204


async def test_builtin_role_cannot_be_deleted(async_client, admin_headers):
    response = await async_client.get("/roles", params={"keyword": "guest"}, headers=admin_headers)
    page = response.json()
    assert page["total"] == 1
    assert page["pages"] == 1

    response = await async_client.delete(f"/roles/{page['items'][0]['id']}", headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "protected"


async def test_delete_permission_with_children_is_refused(async_client, admin_headers):
    system = await permission_id(async_client, admin_headers, "system.users")

    response = await async_client.delete(f"/permissions/{system}", headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["error"] == "permission_has_children"


async def test_mutations_are_audited(async_client, admin_headers):
    await async_client.post("/roles", json={"name": "auditor", "display_name": "Auditor"}, headers=admin_headers)

    response = await async_client.get(
        "/audit-logs", params={"resource_type": "role"}, headers=admin_headers,
    )

    assert response.status_code == 200
    entries = response.json()["items"]
    assert entries[0]["action"] == "create"
    assert entries[0]["details"]["name"] == "auditor"


async def test_session_against_the_api(app, async_client):
    await register(async_client)
    api = ApiClient(base_url="http://testserver", transport=ASGITransport(app=app))
    session = SessionManager(api, api, MemoryTokenStore())
    guard = NavigationGuard(session)

    try:
        assert await session.login("alice", "secret1") is SessionState.TOKEN_ONLY
        assert await guard.decide(resolve_route("/profile")) is Decision.ALLOW
        assert session.state is SessionState.AUTHENTICATED
        assert session.can("auth.profile")
        assert not session.can("user.list")
        assert await guard.decide(resolve_route("/login")) is Decision.REDIRECT_HOME

        expired = SessionManager(api, api, MemoryTokenStore("not-a-token"))
        assert await NavigationGuard(expired).decide(resolve_route("/profile")) is Decision.REDIRECT_LOGIN
        assert expired.state is SessionState.ANONYMOUS
    finally:
        await api.aclose()


async def test_search_hits_are_flat(async_client, admin_headers):
    response = await async_client.get("/permissions/search", params={"keyword": "users"}, headers=admin_headers)

    assert response.status_code == 200
    hits = {hit["name"]: hit for hit in response.json()}
    assert hits["system.users"]["has_children"] is True
    assert "children" not in hits["system.users"]
    assert hits["user.list"]["has_children"] is False


async def test_null_updates_are_validation_errors(async_client, admin_headers):
    permission = await permission_id(async_client, admin_headers, "audit.list")
    user = await register(async_client)
    role = await async_client.post(
        "/roles", json={"name": "auditor", "display_name": "Auditor"}, headers=admin_headers,
    )

    for path, body in [
        (f"/permissions/{permission}", {"display_name": None}),
        (f"/permissions/{permission}", {"sort": None}),
        (f"/roles/{role.json()['id']}", {"display_name": None}),
        (f"/users/{user['id']}", {"email": None}),
        (f"/users/{user['id']}", {"status": None}),
    ]:
        response = await async_client.put(path, json=body, headers=admin_headers)
        assert response.status_code == 400, (path, response.text)
        assert response.json()["error"] == "validation"
        assert set(response.json()["detail"]) == set(body)

    response = await async_client.put("/auth/profile", json={"email": None}, headers=admin_headers)
    assert response.status_code == 400

    # optional columns still accept null
    response = await async_client.put(f"/users/{user['id']}", json={"nickname": None}, headers=admin_headers)
    assert response.status_code == 200


async def test_dashboard_stats(async_client, admin_headers, login_as):
    await register(async_client)
    headers = await login_as("alice", "secret1")

    response = await async_client.get("/dashboard/stats", headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "user_count": 2,
        "role_count": 3,
        "permission_count": len(DEFAULT_PERMISSIONS),
        "online_count": 2,
    }


async def test_dashboard_stats_require_sign_in(async_client):
    response = await async_client.get("/dashboard/stats")

    assert response.status_code == 401
