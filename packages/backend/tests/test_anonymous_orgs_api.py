"""Anonymous orgs API tests — list, get, rename."""

import uuid

import pytest


@pytest.fixture
async def personal_org(client):
    resp = await client.post(
        "/anonymous-users", json={"appId": "my-app", "email": "jane@example.com"}
    )
    return resp.json()["anonymousOrg"]


@pytest.mark.asyncio
async def test_list_anonymous_orgs(client, personal_org):
    await client.post(
        "/anonymous-users", json={"appId": "other-app", "email": "jane@example.com"}
    )
    resp = await client.get("/anonymous-orgs", params={"appId": "my-app"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["anonymousOrgs"][0]["id"] == personal_org["id"]


@pytest.mark.asyncio
async def test_list_anonymous_orgs_requires_app_id(client):
    resp = await client.get("/anonymous-orgs")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_anonymous_org(client, personal_org):
    resp = await client.get(f"/anonymous-orgs/{personal_org['id']}")
    assert resp.status_code == 200
    assert resp.json()["anonymousOrg"]["name"] == "Personal"


@pytest.mark.asyncio
async def test_get_anonymous_org_not_found(client):
    resp = await client.get(f"/anonymous-orgs/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Anonymous org not found"}


@pytest.mark.asyncio
async def test_rename_anonymous_org(client, personal_org):
    resp = await client.patch(
        f"/anonymous-orgs/{personal_org['id']}",
        json={"name": "Jane's Workspace", "metadata": {"seats": 1}},
    )
    assert resp.status_code == 200
    org = resp.json()["anonymousOrg"]
    assert org["name"] == "Jane's Workspace"
    assert org["metadata"] == {"seats": 1}

    again = await client.get(f"/anonymous-orgs/{personal_org['id']}")
    assert again.json()["anonymousOrg"]["name"] == "Jane's Workspace"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"name": ""}, {"name": None}])
async def test_rename_anonymous_org_rejects_empty_name(client, personal_org, body):
    resp = await client.patch(f"/anonymous-orgs/{personal_org['id']}", json=body)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_rename_anonymous_org_not_found(client):
    resp = await client.patch(f"/anonymous-orgs/{uuid.uuid4()}", json={"name": "X"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_anonymous_orgs_require_api_key(anon_client):
    resp = await anon_client.get("/anonymous-orgs", params={"appId": "my-app"})
    assert resp.status_code == 401
