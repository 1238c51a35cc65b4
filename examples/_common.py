"""
Shared helpers for matrixstore examples.

Handles the health check and account setup (create-account + login)
so each example can focus on its specific workflow.
"""

import os
import sys
import uuid

import httpx

BASE = os.environ.get("MATRIXSTORE_API_URL", "http://localhost:8000").rstrip("/") + "/api"


def check_backend() -> None:
    """Verify the backend is reachable and its database is up."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  matrixstore serve --reload")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {health['database']}")
    print(f"  Redis:    {health['redis']}")

    if health["database"] != "ok":
        print("\nERROR: Database is not connected. Check MATRIXSTORE_DATABASE_URL, e.g.")
        print("  MATRIXSTORE_DATABASE_URL=sqlite+aiosqlite:///matrixstore.db matrixstore init-db")
        sys.exit(1)


def authenticate() -> str:
    """Create a fresh account and log in, returning a bearer token.

    Uses a unique email per run so examples are idempotent.
    """
    run_id = uuid.uuid4().hex[:8]
    email = f"demo-{run_id}@example.com"
    password = "demo-password-123"

    resp = httpx.post(
        f"{BASE}/create-account",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code not in (201, 409):  # 409 = already exists
        print(f"ERROR: Account creation failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    resp = httpx.post(
        f"{BASE}/login",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    print(f"  Account:  {email}")
    return resp.json()["token"]


def create_client() -> httpx.Client:
    """Check backend, authenticate, and return an httpx Client with auth headers."""
    check_backend()
    token = authenticate()
    return httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {token}"},
    )
