"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from catalog.core.context import CatalogContext


class TestHealthEndpoints:
    """Tests for health check routes."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "dev"
        assert "version" in data

    @pytest.mark.asyncio
    async def test_health_live_endpoint(self, client: AsyncClient):
        response = await client.get("/health/live")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"alive": True}

    @pytest.mark.asyncio
    async def test_health_ready_endpoint(self, client: AsyncClient):
        response = await client.get("/health/ready")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"database": True, "cache": True}

    @pytest.mark.asyncio
    async def test_ready_degraded_when_cache_down(self, client: AsyncClient, ctx: CatalogContext):
        with patch.object(ctx.cache, "ping", new=AsyncMock(side_effect=ConnectionError("redis down"))):
            response = await client.get("/health/ready")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["cache"] is False
        assert data["checks"]["database"] is True

    @pytest.mark.asyncio
    async def test_ready_degraded_when_database_down(self, client: AsyncClient):
        with patch("catalog.api.routes.health.verify_db_connection", new=AsyncMock(return_value=False)):
            response = await client.get("/health/ready")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] is False
