"""
Tests for the health check and root endpoints.

Covers:
- Response structure and component checks
- Auth secrets reported by name only
- No auth required
"""

import pytest
from httpx import AsyncClient

from config import settings
from services import health


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_returns_200(self, async_client: AsyncClient):
        """GET /health returns 200 when the database is accessible."""
        response = await async_client.get("/health")
        # degraded when secrets or the upload dir are missing in the test env
        assert response.status_code == 200
        assert response.json()["status"] in ("healthy", "degraded")

    @pytest.mark.asyncio
    async def test_health_response_structure(self, async_client: AsyncClient):
        data = (await async_client.get("/health")).json()
        for key in ("status", "app", "version", "uptime_seconds", "checks", "timestamp"):
            assert key in data
        assert isinstance(data["checks"], list)
        assert data["app"] == settings.APP_NAME

    @pytest.mark.asyncio
    async def test_health_component_names(self, async_client: AsyncClient):
        data = (await async_client.get("/health")).json()
        names = {c["name"] for c in data["checks"]}
        assert names == {"database", "storage", "auth_secrets"}

        db_check = next(c for c in data["checks"] if c["name"] == "database")
        assert db_check["status"] == "ok"
        assert db_check["response_time_ms"] is not None

    def test_auth_secrets_missing_reported_by_name(self, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", None)
        monkeypatch.setattr(settings, "JWT_SECRET", "super-secret-value")

        check = health.check_auth_secrets()

        assert check.status == "error"
        assert "TELEGRAM_BOT_TOKEN" in check.message
        assert "super-secret-value" not in check.message

    def test_auth_secrets_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "bot")
        monkeypatch.setattr(settings, "JWT_SECRET", "jwt")
        assert health.check_auth_secrets().status == "ok"

    def test_storage_local_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
        assert health.check_storage().status == "ok"

        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "missing"))
        assert health.check_storage().status == "error"


class TestRoot:
    @pytest.mark.asyncio
    async def test_root_greeting(self, async_client: AsyncClient):
        response = await async_client.get("/")
        assert response.status_code == 200
        assert response.text == "Hello from the backend!"

    @pytest.mark.asyncio
    async def test_api_index(self, async_client: AsyncClient):
        data = (await async_client.get("/api")).json()
        assert data["endpoints"]["auth"] == "/api/auth"
        assert data["endpoints"]["jobseekers"] == "/api/jobseekers"
