"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status, version and DB check."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_reports_missing_redis(client):
    """Redis is never initialized in tests; health says so without degrading."""
    resp = await client.get("/api/health")
    assert resp.json()["redis"] == "unavailable"
    assert resp.json()["status"] == "healthy"
