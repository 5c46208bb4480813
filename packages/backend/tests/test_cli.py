"""CLI tests — click's CliRunner against a mocked service.

Learn: The HTTP commands build their client through cli.main._client,
so swapping it for one on httpx.MockTransport checks request shape and
output formatting without a running server.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from client_service import __version__
from client_service.cli import main as cli


@pytest.fixture
def mock_service(monkeypatch):
    """Captured requests; responses come from `responses` keyed by path."""
    seen = []
    responses = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = responses[request.url.path]
        return httpx.Response(status, json=body)

    def fake_client():
        return httpx.AsyncClient(
            base_url="http://svc",
            headers={"x-api-key": "k"},
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    return seen, responses


def test_version():
    result = CliRunner().invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_openapi_lists_routes():
    result = CliRunner().invoke(cli.main, ["openapi"])
    assert result.exit_code == 0
    document = json.loads(result.output)
    assert "/resolve" in document["paths"]
    assert "/users" in document["paths"]


def test_openapi_to_file(tmp_path):
    target = tmp_path / "openapi.json"
    result = CliRunner().invoke(cli.main, ["openapi", "-o", str(target)])
    assert result.exit_code == 0
    assert json.loads(target.read_text())["info"]["title"] == "Client Service"


def test_resolve_sends_profile(mock_service):
    seen, responses = mock_service
    responses["/resolve"] = (200, {
        "orgId": "11111111-1111-1111-1111-111111111111",
        "userId": "22222222-2222-2222-2222-222222222222",
        "orgCreated": True,
        "userCreated": False,
    })

    result = CliRunner().invoke(
        cli.main, ["resolve", "my-app", "org-1", "user-1", "--email", "a@x.com"]
    )
    assert result.exit_code == 0
    assert "11111111-1111-1111-1111-111111111111" in result.output
    assert "created" in result.output
    assert "existing" in result.output
    assert json.loads(seen[0].content) == {
        "appId": "my-app",
        "externalOrgId": "org-1",
        "externalUserId": "user-1",
        "email": "a@x.com",
    }


def test_resolve_reports_error(mock_service):
    _, responses = mock_service
    responses["/resolve"] = (401, {"error": "Invalid API key"})

    result = CliRunner().invoke(cli.main, ["resolve", "my-app", "org-1", "user-1"])
    assert result.exit_code == 1
    assert "Invalid API key" in result.output


def test_users_table(mock_service):
    seen, responses = mock_service
    responses["/users"] = (200, {
        "users": [{
            "id": "22222222-2222-2222-2222-222222222222",
            "externalId": "user-1",
            "email": "a@x.com",
            "firstName": "Ann",
            "lastName": None,
        }],
        "total": 1,
        "limit": 50,
        "offset": 0,
    })

    result = CliRunner().invoke(
        cli.main, ["users", "my-app", "--external-org-id", "org-1"]
    )
    assert result.exit_code == 0
    assert "Users 1-1 of 1" in result.output
    assert "a@x.com" in result.output
    assert seen[0].url.params["externalOrgId"] == "org-1"


def test_users_empty(mock_service):
    _, responses = mock_service
    responses["/users"] = (200, {"users": [], "total": 0, "limit": 50, "offset": 0})

    result = CliRunner().invoke(cli.main, ["users", "my-app"])
    assert result.exit_code == 0
    assert "No users found." in result.output
