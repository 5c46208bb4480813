"""GET /users tests — filters, tenant scoping, pagination.

Learn: Users are created through POST /resolve (the only way resolved
identities come into being), then listed back.

Pattern: test_<verb>_<noun>_<scenario>
"""

import uuid

import pytest


async def _resolve(client, app_id, org, user, **profile):
    resp = await client.post(
        "/resolve",
        json={
            "appId": app_id,
            "externalOrgId": org,
            "externalUserId": user,
            **profile,
        },
    )
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
async def team(client):
    """Two orgs in my-app: org-1 with three users, org-2 with one."""
    ids = {}
    for user in ("u1", "u2", "u3"):
        ids[user] = await _resolve(client, "my-app", "org-1", user, email=f"{user}@x.com")
    ids["u4"] = await _resolve(client, "my-app", "org-2", "u4", email="u4@x.com")
    return ids


# ═══════════════════════════════════════════════════════════
# Filters
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_users_by_org_id(client, team):
    org_id = team["u1"]["orgId"]
    resp = await client.get("/users", params={"appId": "my-app", "orgId": org_id})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert {u["externalId"] for u in data["users"]} == {"u1", "u2", "u3"}
    assert all(u["orgId"] == org_id for u in data["users"])


@pytest.mark.asyncio
async def test_list_users_by_external_org_id(client, team):
    resp = await client.get(
        "/users", params={"appId": "my-app", "externalOrgId": "org-2"}
    )
    data = resp.json()
    assert data["total"] == 1
    assert data["users"][0]["id"] == team["u4"]["userId"]


@pytest.mark.asyncio
async def test_list_users_unknown_external_org_is_empty(client, team):
    """A never-resolved external org is not an error."""
    resp = await client.get(
        "/users", params={"appId": "my-app", "externalOrgId": "never-seen"}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["users"] == []
    assert data["total"] == 0


@pytest.mark.asyncio
async def test_list_users_whole_app(client, team):
    resp = await client.get("/users", params={"appId": "my-app"})
    assert resp.json()["total"] == 4


@pytest.mark.asyncio
async def test_list_users_by_email(client, team):
    resp = await client.get("/users", params={"appId": "my-app", "email": "u2@x.com"})
    data = resp.json()
    assert data["total"] == 1
    assert data["users"][0]["externalId"] == "u2"


@pytest.mark.asyncio
async def test_list_users_scoped_to_app(client, team):
    """Another tenant never sees my-app's users, even with the same org id."""
    org_id = team["u1"]["orgId"]
    await _resolve(client, "other-app", "org-1", "u1")

    resp = await client.get("/users", params={"appId": "other-app", "orgId": org_id})
    assert resp.json()["total"] == 0

    resp = await client.get(
        "/users", params={"appId": "other-app", "externalOrgId": "org-1"}
    )
    data = resp.json()
    assert data["total"] == 1
    assert data["users"][0]["id"] != team["u1"]["userId"]


# ═══════════════════════════════════════════════════════════
# Pagination
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_users_paginates_in_creation_order(client):
    for n in range(5):
        await _resolve(client, "page-app", "org-1", f"user-{n}")

    seen = []
    for offset in (0, 2, 4):
        resp = await client.get(
            "/users",
            params={"appId": "page-app", "externalOrgId": "org-1",
                    "limit": 2, "offset": offset},
        )
        data = resp.json()
        assert data["total"] == 5
        assert data["limit"] == 2
        assert data["offset"] == offset
        seen.extend(u["externalId"] for u in data["users"])

    assert seen == [f"user-{n}" for n in range(5)]


@pytest.mark.asyncio
async def test_list_users_default_limit(client, team):
    resp = await client.get("/users", params={"appId": "my-app"})
    data = resp.json()
    assert data["limit"] == 50
    assert data["offset"] == 0


@pytest.mark.asyncio
async def test_list_users_offset_past_end(client, team):
    resp = await client.get("/users", params={"appId": "my-app", "offset": 100})
    data = resp.json()
    assert data["users"] == []
    assert data["total"] == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [
    {"limit": 201},
    {"limit": 0},
    {"offset": -1},
    {"orgId": "not-a-uuid"},
])
async def test_list_users_rejects_bad_query(client, params):
    resp = await client.get("/users", params={"appId": "my-app", **params})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid query parameters"


@pytest.mark.asyncio
async def test_list_users_requires_app_id(client):
    resp = await client.get("/users")
    assert resp.status_code == 400
    assert any(d["field"] == "appId" for d in resp.json()["details"])


@pytest.mark.asyncio
async def test_list_users_requires_api_key(anon_client):
    resp = await anon_client.get("/users", params={"appId": "my-app"})
    assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════
# Single user
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_user(client, team):
    user_id = team["u1"]["userId"]
    resp = await client.get(f"/users/{user_id}", params={"appId": "my-app"})
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["id"] == user_id
    assert user["email"] == "u1@x.com"
    assert user["orgId"] == team["u1"]["orgId"]


@pytest.mark.asyncio
async def test_get_user_other_app_not_found(client, team):
    user_id = team["u1"]["userId"]
    resp = await client.get(f"/users/{user_id}", params={"appId": "other-app"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_get_user_unknown_id(client):
    resp = await client.get(f"/users/{uuid.uuid4()}", params={"appId": "my-app"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_user_bad_id(client):
    resp = await client.get("/users/not-a-uuid", params={"appId": "my-app"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid parameters"
