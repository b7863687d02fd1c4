"""Integration tests for health endpoints."""
from __future__ import annotations

import pytest

from tests.factories import make_image_bytes


@pytest.mark.integration
@pytest.mark.asyncio
class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client):
        """Test basic health check."""
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "healthy"
        assert data["cache"] == "disabled"
        assert data["extractor"] == "histogram"
        assert data["image_count"] == 0
        assert data["history_count"] == 0
        assert data["vector_dimension"] is None

    async def test_health_counts(self, client):
        upload = await client.post(
            "/api/images/upload",
            files={"image": ("red.png", make_image_bytes(), "image/png")}
        )
        await client.get(f"/api/images/{upload.json()['image_id']}/similar")

        data = (await client.get("/api/health")).json()

        assert data["image_count"] == 1
        assert data["history_count"] == 1
        assert data["vector_dimension"] == 40

    async def test_root_endpoint(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/api/health"
