"""Provider sync tests — Bearer auth, org claims, profile pull.

Learn: The FakeIdentityProvider from conftest.py maps tokens to claims
and user ids to profiles, so these tests exercise the full route →
dependency → service path without network access.
"""

import pytest

from client_service.auth.provider import ProviderProfile


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


# ═══════════════════════════════════════════════════════════
# Bearer gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sync_requires_authorization_header(anon_client):
    resp = await anon_client.post("/users/sync")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Missing authorization header"}
    assert resp.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_sync_rejects_non_bearer_scheme(anon_client):
    resp = await anon_client.post("/orgs/sync", headers={"Authorization": "Basic abc"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid authorization header"}


@pytest.mark.asyncio
async def test_sync_rejects_unknown_token(anon_client):
    resp = await anon_client.post("/users/sync", headers=_bearer("forged"))
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}


@pytest.mark.asyncio
async def test_sync_ignores_api_key(anon_client):
    """The tenant API key is not a substitute for a provider session."""
    resp = await anon_client.post("/users/sync", headers={"x-api-key": "test_api_key"})
    assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════
# POST /orgs/sync
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sync_org_creates_then_reuses(anon_client, provider):
    provider.tokens["t1"] = {"sub": "user_1", "org_id": "org_abc"}

    first = await anon_client.post("/orgs/sync", headers=_bearer("t1"))
    assert first.status_code == 200
    assert first.json()["created"] is True
    assert first.json()["org"]["externalId"] == "org_abc"

    second = (await anon_client.post("/orgs/sync", headers=_bearer("t1"))).json()
    assert second["created"] is False
    assert second["org"]["id"] == first.json()["org"]["id"]


@pytest.mark.asyncio
async def test_sync_org_reads_nested_claim(anon_client, provider):
    provider.tokens["t2"] = {"sub": "user_1", "o": {"id": "org_v2"}}
    resp = await anon_client.post("/orgs/sync", headers=_bearer("t2"))
    assert resp.json()["org"]["externalId"] == "org_v2"


@pytest.mark.asyncio
async def test_sync_org_without_claim(anon_client, provider):
    provider.tokens["t3"] = {"sub": "user_1"}
    resp = await anon_client.post("/orgs/sync", headers=_bearer("t3"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "No organization in token"


# ═══════════════════════════════════════════════════════════
# POST /users/sync
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sync_user_pulls_provider_profile(anon_client, provider):
    provider.tokens["t1"] = {"sub": "user_1", "org_id": "org_abc"}
    provider.profiles["user_1"] = ProviderProfile(
        user_id="user_1", email="jane@example.com", first_name="Jane"
    )

    resp = await anon_client.post("/users/sync", headers=_bearer("t1"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["created"] is True
    assert data["user"]["externalId"] == "user_1"
    assert data["user"]["email"] == "jane@example.com"
    assert data["user"]["firstName"] == "Jane"
    assert data["user"]["orgId"] is not None
    assert provider.fetched == ["user_1"]


@pytest.mark.asyncio
async def test_sync_user_keeps_email_provider_omits(anon_client, provider):
    provider.tokens["t1"] = {"sub": "user_1"}
    provider.profiles["user_1"] = ProviderProfile(user_id="user_1", email="jane@example.com")
    await anon_client.post("/users/sync", headers=_bearer("t1"))

    provider.profiles["user_1"] = ProviderProfile(user_id="user_1", last_name="Doe")
    resp = await anon_client.post("/users/sync", headers=_bearer("t1"))
    data = resp.json()
    assert data["created"] is False
    assert data["user"]["email"] == "jane@example.com"
    assert data["user"]["lastName"] == "Doe"


@pytest.mark.asyncio
async def test_sync_user_lands_in_provider_app(anon_client, client, provider):
    """Provider-mode rows are listed under the configured provider app id."""
    provider.tokens["t1"] = {"sub": "user_1", "org_id": "org_abc"}
    await anon_client.post("/users/sync", headers=_bearer("t1"))

    resp = await client.get(
        "/users", params={"appId": "default", "externalOrgId": "org_abc"}
    )
    assert resp.json()["total"] == 1
