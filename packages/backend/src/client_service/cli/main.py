"""client-service CLI — run the server, export the API schema, poke a deployment.

Usage:
    client-service serve --port 8000                      # Run the API with uvicorn
    client-service openapi -o openapi.json                # Write the OpenAPI document
    client-service resolve my-app org-1 user-1            # Resolve external ids
    client-service users my-app --external-org-id org-1   # List a tenant's users
    client-service health                                 # Health of a running service

resolve/users/health talk to CLIENT_SERVICE_API_URL with CLIENT_SERVICE_API_KEY.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from client_service import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("CLIENT_SERVICE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at a running client service."""
    headers = {}
    api_key = os.environ.get("CLIENT_SERVICE_API_KEY")
    if api_key:
        headers["x-api-key"] = api_key
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Inside an already running loop (e.g. CliRunner under pytest-asyncio)
    the coroutine is offloaded to a worker thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(
            str(row.get(k) if row.get(k) is not None else "—")[:w].ljust(w)
            for _, k, w in columns
        )
        click.echo(line)


def _fail(resp: httpx.Response):
    try:
        message = resp.json().get("error", resp.text)
    except ValueError:
        message = resp.text
    click.secho(f"Error {resp.status_code}: {message}", fg="red", err=True)
    sys.exit(1)


def _created(flag: bool) -> str:
    return click.style("created", fg="green") if flag else click.style("existing", fg="cyan")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="client-service")
def main():
    """Client Service — identity resolution for tenant applications."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: CLIENT_SERVICE_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: CLIENT_SERVICE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from client_service.config import settings

    uvicorn.run(
        "client_service.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
def openapi(output: Optional[str]):
    """Export the OpenAPI document as JSON."""
    from client_service.main import app

    document = json.dumps(app.openapi(), indent=2)
    if output:
        with open(output, "w") as fh:
            fh.write(document + "\n")
        click.echo(f"OpenAPI document written to {output}")
    else:
        click.echo(document)


# ---------------------------------------------------------------------------
# client-service resolve
# ---------------------------------------------------------------------------


@main.command()
@click.argument("app_id")
@click.argument("external_org_id")
@click.argument("external_user_id")
@click.option("--email", help="User email")
@click.option("--first-name", help="User first name")
@click.option("--last-name", help="User last name")
@click.option("--image-url", help="User avatar URL")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def resolve(app_id: str, external_org_id: str, external_user_id: str,
            email: Optional[str], first_name: Optional[str], last_name: Optional[str],
            image_url: Optional[str], as_json: bool):
    """Resolve external org/user ids to internal UUIDs (creates on first call)."""
    body = {
        "appId": app_id,
        "externalOrgId": external_org_id,
        "externalUserId": external_user_id,
    }
    for key, value in (
        ("email", email),
        ("firstName", first_name),
        ("lastName", last_name),
        ("imageUrl", image_url),
    ):
        if value is not None:
            body[key] = value
    _run(_resolve_impl(body, as_json))


async def _resolve_impl(body: dict, as_json: bool):
    async with _client() as c:
        r = await c.post("/resolve", json=body)
    if r.status_code != 200:
        _fail(r)
    data = r.json()

    if as_json:
        click.echo(_pretty_json(data))
        return
    click.echo(f"  Org:   {data['orgId']}  ({_created(data['orgCreated'])})")
    click.echo(f"  User:  {data['userId']}  ({_created(data['userCreated'])})")


# ---------------------------------------------------------------------------
# client-service users
# ---------------------------------------------------------------------------


@main.command()
@click.argument("app_id")
@click.option("--org-id", help="Internal org UUID")
@click.option("--external-org-id", help="Tenant's own org id")
@click.option("--email", help="Exact email match")
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def users(app_id: str, org_id: Optional[str], external_org_id: Optional[str],
          email: Optional[str], limit: int, offset: int, as_json: bool):
    """List users of a tenant application."""
    params = {"appId": app_id, "limit": limit, "offset": offset}
    if org_id:
        params["orgId"] = org_id
    if external_org_id:
        params["externalOrgId"] = external_org_id
    if email:
        params["email"] = email
    _run(_users_impl(params, as_json))


async def _users_impl(params: dict, as_json: bool):
    async with _client() as c:
        r = await c.get("/users", params=params)
    if r.status_code != 200:
        _fail(r)
    data = r.json()

    if as_json:
        click.echo(_pretty_json(data))
        return
    if not data["users"]:
        click.echo("No users found.")
        return

    shown_to = data["offset"] + len(data["users"])
    click.secho(f"Users {data['offset'] + 1}-{shown_to} of {data['total']}:", bold=True)
    _print_table(data["users"], [
        ("ID", "id", 36),
        ("EXTERNAL ID", "externalId", 20),
        ("EMAIL", "email", 30),
        ("FIRST", "firstName", 12),
        ("LAST", "lastName", 12),
    ])


# ---------------------------------------------------------------------------
# client-service health
# ---------------------------------------------------------------------------


@main.command()
def health():
    """Show the health of a running service."""
    _run(_health_impl())


async def _health_impl():
    async with _client() as c:
        try:
            r = await c.get("/health")
        except httpx.ConnectError:
            click.secho(f"Service not reachable at {_api_url()}", fg="red", err=True)
            sys.exit(1)
    data = r.json()
    color = "green" if data.get("status") == "ok" else "yellow"
    click.secho(f"Status:   {data.get('status')}", fg=color)
    click.echo(f"Version:  {data.get('version')}")
    click.echo(f"Database: {data.get('database')}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
