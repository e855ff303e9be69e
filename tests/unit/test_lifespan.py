"""Tests for application startup ordering."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI

from app.config import Settings
from app.core import lifespan as lifespan_module
from app.services.llm_factory import LLMStartupError


def _settings():
    return Settings(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_service_role_key="test-key",
        database_url="postgresql://u:p@localhost:5432/db",
    )


@pytest.mark.asyncio
async def test_llm_startup_error_opens_no_pool():
    create_pool = AsyncMock()
    with patch.object(lifespan_module, "get_settings", return_value=_settings()), patch.object(
        lifespan_module,
        "_init_generator",
        side_effect=LLMStartupError("LLM_REQUIRED=true but no API key configured"),
    ), patch.object(lifespan_module, "create_db_pool", create_pool):
        with pytest.raises(LLMStartupError):
            async with lifespan_module.lifespan(FastAPI()):
                pass

    create_pool.assert_not_awaited()
    assert lifespan_module.get_db_pool() is None


@pytest.mark.asyncio
async def test_startup_and_shutdown_close_pool():
    pool = AsyncMock()
    settings = _settings()
    with patch.object(lifespan_module, "get_settings", return_value=settings), patch.object(
        lifespan_module, "_init_generator", return_value=None
    ), patch.object(lifespan_module, "create_db_pool", AsyncMock(return_value=pool)):
        async with lifespan_module.lifespan(FastAPI()):
            assert lifespan_module.get_db_pool() is pool

    pool.close.assert_awaited_once()
    assert lifespan_module.get_db_pool() is None
