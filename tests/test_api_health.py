"""Tests for health check endpoints."""

from httpx import AsyncClient


class TestHealthEndpoints:
    """Tests for liveness and readiness probes."""

    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness probe always reports healthy."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_ready_with_database(self, client: AsyncClient) -> None:
        """Readiness probe reports database and cache status."""
        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["database"] == "connected"
        assert data["cache"] == "connected"
