"""Health endpoints and request middleware."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "0.1.0"
    assert "environment" in data


@pytest.mark.asyncio
async def test_readiness_reports_each_check(client: AsyncClient) -> None:
    """Without Redis the service reports degraded, but database and catalog are ok."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["catalog"] == "ok"
    assert data["checks"]["redis"] != "ok"
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "req-abc-123"})
    assert response.headers["x-request-id"] == "req-abc-123"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/gacha/boxes",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_open_box_has_tighter_rate_limit(client: AsyncClient, monkeypatch) -> None:
    counts: list[str] = []

    async def over_limit(key: str, window_seconds: int) -> int:
        counts.append(key)
        return 11

    monkeypatch.setattr("garage.middleware.rate_limit.count_in_window", over_limit)
    response = await client.post("/gacha/open", json={"boxType": "standard"})
    assert response.status_code == 429
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert counts[0].startswith("ratelimit:open:")
