"""Tests for the health and metrics endpoints."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.routers.health import check_database_health, check_llm_health
from app.services.llm_factory import LLMStartupError, LLMStatus

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")


@pytest.fixture
def client():
    from app.main import app

    return TestClient(app)


def _pool(fetchval=None, side_effect=None):
    conn = AsyncMock()
    conn.fetchval = AsyncMock(return_value=fetchval, side_effect=side_effect)
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool


def _llm_status(enabled=True):
    return LLMStatus(
        enabled=enabled,
        provider_config="auto",
        provider_resolved="anthropic" if enabled else None,
        models=["claude-3-5-haiku-latest"],
    )


class TestDependencyChecks:
    @pytest.mark.asyncio
    async def test_database_ok(self):
        health = await check_database_health(_pool(fetchval=1))
        assert health.status == "ok"
        assert health.latency_ms is not None

    @pytest.mark.asyncio
    async def test_database_error(self):
        health = await check_database_health(_pool(side_effect=OSError("refused")))
        assert health.status == "error"
        assert "refused" in health.error

    @pytest.mark.asyncio
    async def test_database_not_initialized(self):
        health = await check_database_health(None)
        assert health.status == "error"

    def test_llm_disabled(self):
        with patch(
            "app.services.llm_factory.get_llm_status", return_value=_llm_status(False)
        ):
            health, provider = check_llm_health()
        assert health.status == "disabled"
        assert provider is None

    def test_llm_startup_error(self):
        with patch(
            "app.services.llm_factory.get_llm_status",
            side_effect=LLMStartupError("LLM_REQUIRED=true but no API key configured"),
        ):
            health, _ = check_llm_health()
        assert health.status == "error"


class TestHealthEndpoint:
    def test_ok(self, client):
        with patch("app.routers.health._db_pool", _pool(fetchval=1)), patch(
            "app.services.llm_factory.get_llm_status", return_value=_llm_status()
        ):
            response = client.get("/health")

        data = response.json()
        assert data["status"] == "ok"
        assert data["llm_provider"] == "anthropic"
        assert data["poller_running"] is False

    def test_degraded_without_llm(self, client):
        with patch("app.routers.health._db_pool", _pool(fetchval=1)), patch(
            "app.services.llm_factory.get_llm_status", return_value=_llm_status(False)
        ):
            response = client.get("/health")

        assert response.json()["status"] == "degraded"

    def test_error_without_database(self, client):
        with patch("app.routers.health._db_pool", None), patch(
            "app.services.llm_factory.get_llm_status", return_value=_llm_status()
        ):
            response = client.get("/health")

        assert response.json()["status"] == "error"


class TestMetricsEndpoint:
    def test_exposes_queue_metrics(self, client):
        client.get("/")
        response = client.get("/metrics")

        assert response.status_code == 200
        body = response.text
        assert "seo_queue_requests_total" in body
        assert "seo_jobs_processed" in body
        assert "seo_poll_ticks" in body

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
