"""Smoke tests for health and app wiring."""

from httpx import AsyncClient


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/v1/health returns 200 and status ok without an admin key."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data.get("status") == "ok"
    assert data.get("version")


async def test_ready_returns_503_without_engine(client: AsyncClient) -> None:
    """Without Firebase credentials the engine is not wired and readiness fails."""
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


async def test_ready_returns_ok_with_engine(engine_client: AsyncClient) -> None:
    response = await engine_client.get("/api/v1/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["lock_backend"] == "memory"
    assert data["storage_backend"] == "local"
