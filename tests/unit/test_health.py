"""Unit tests for health endpoints

Liveness check and service information, no database required.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from report_service.main import VERSION, app


@pytest.mark.unit
class TestHealthCheck:
    """Test health check endpoint"""

    async def test_health_returns_healthy(self):
        """Happy path: health check returns healthy status"""
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_root_reports_version(self):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["version"] == VERSION
