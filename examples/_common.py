"""
Shared helpers for client-service examples.

Handles the health check and the API key header so each example can
focus on its specific workflow.
"""

import os
import sys

import httpx

BASE = os.environ.get("CLIENT_SERVICE_API_URL", "http://localhost:8000")


def check_backend() -> None:
    """Verify the service is reachable and its database answers."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Service not reachable at {BASE}")
        print("Start it with:  client-service serve --reload")
        sys.exit(1)

    health = resp.json()
    print("Service health:")
    print(f"  Version:  {health['version']}")
    print(f"  Database: {health['database']}")

    if health["status"] != "ok":
        print("\nERROR: Database is not connected. Check CLIENT_SERVICE_DATABASE_URL and run: alembic upgrade head")
        sys.exit(1)


def create_client() -> httpx.Client:
    """Check the service and return an httpx Client sending the API key."""
    check_backend()
    api_key = os.environ.get("CLIENT_SERVICE_API_KEY")
    if not api_key:
        print("ERROR: set CLIENT_SERVICE_API_KEY to the key the service was started with")
        sys.exit(1)
    return httpx.Client(base_url=BASE, timeout=10, headers={"x-api-key": api_key})


def resolve(client: httpx.Client, app_id: str, org: str, user: str, **profile) -> dict:
    """POST /resolve and fail loudly on anything but 200."""
    resp = client.post("/resolve", json={
        "appId": app_id,
        "externalOrgId": org,
        "externalUserId": user,
        **profile,
    })
    assert resp.status_code == 200, f"Resolve failed: {resp.text}"
    return resp.json()
