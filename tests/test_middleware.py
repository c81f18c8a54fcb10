"""Middleware tests: request ID, CORS, error mapping."""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from pactnexus.progression import router as progression_router


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/api/v1/insights",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    """Unknown paths return 404 with JSON body."""
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_validation_error_shape(authed_client: AsyncClient) -> None:
    """Malformed bodies return 422 with the validation errors attached."""
    response = await authed_client.post("/api/v1/events", json={"payload": {}})
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert data["errors"]


@pytest.mark.asyncio
async def test_store_failure_returns_503(authed_client: AsyncClient, monkeypatch) -> None:
    """Record store I/O errors surface as a generic 503."""

    async def _unavailable(*_args, **_kwargs):
        raise OperationalError("SELECT pacts", {}, Exception("connection refused"))

    monkeypatch.setattr(progression_router, "load_snapshot", _unavailable)
    response = await authed_client.get("/api/v1/rank-xp")
    assert response.status_code == 503
    assert response.json() == {"detail": "Store unavailable"}
