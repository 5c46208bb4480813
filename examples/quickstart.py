#!/usr/bin/env python3
"""
Client Service Quickstart — resolve, resolve again, list.

Resolves a few external users of one tenant app, shows that a second
resolve returns the same ids, then lists the org's users.
Run with: python examples/quickstart.py

Requires: pip install httpx
Service must be running: http://localhost:8000
"""

import uuid

from _common import create_client, resolve


def _flag(created: bool) -> str:
    return "created" if created else "existing"


def main():
    run_id = uuid.uuid4().hex[:6]
    app_id = f"demo-app-{run_id}"
    client = create_client()

    # ── First contact ─────────────────────────────────────────────
    print(f"\n1. Resolving acme/alice in {app_id}...")
    first = resolve(client, app_id, "acme", "alice", email="alice@acme.test", firstName="Alice")
    print(f"   Org:  {first['orgId']} ({_flag(first['orgCreated'])})")
    print(f"   User: {first['userId']} ({_flag(first['userCreated'])})")

    # ── Same keys again ───────────────────────────────────────────
    print("\n2. Resolving acme/alice again (no profile)...")
    again = resolve(client, app_id, "acme", "alice")
    assert again["orgId"] == first["orgId"] and again["userId"] == first["userId"]
    print(f"   Same ids, org {_flag(again['orgCreated'])}, user {_flag(again['userCreated'])}")

    # ── A teammate ────────────────────────────────────────────────
    print("\n3. Resolving acme/bob...")
    bob = resolve(client, app_id, "acme", "bob", email="bob@acme.test")
    print(f"   User: {bob['userId']} ({_flag(bob['userCreated'])}), same org: {bob['orgId'] == first['orgId']}")

    # ── List the org ──────────────────────────────────────────────
    print("\n4. Listing users of acme...")
    resp = client.get("/users", params={"appId": app_id, "externalOrgId": "acme"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    page = resp.json()
    for user in page["users"]:
        print(f"   {user['externalId']:<8} {user['email'] or '—':<20} {user['id']}")
    print(f"   total: {page['total']}")

    print("\nDone.")


if __name__ == "__main__":
    main()
