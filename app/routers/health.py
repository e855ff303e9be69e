"""Health check endpoint."""

import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from app import __version__
from app.config import Settings, get_settings
from app.schemas import DependencyHealth, HealthResponse
from app.seo.poller import get_poller

router = APIRouter()
logger = structlog.get_logger(__name__)

# Global connection pool (set during app startup)
_db_pool = None


def set_db_pool(pool):
    """Set the database pool for health checks."""
    global _db_pool
    _db_pool = pool


async def check_database_health(pool) -> DependencyHealth:
    """Check PostgreSQL connectivity through the pool."""
    if pool is None:
        return DependencyHealth(status="error", error="Database pool not initialized")

    start = time.perf_counter()
    try:
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        latency = (time.perf_counter() - start) * 1000
        return DependencyHealth(status="ok", latency_ms=latency)
    except Exception as e:
        latency = (time.perf_counter() - start) * 1000
        return DependencyHealth(status="error", latency_ms=latency, error=str(e))


def check_llm_health() -> tuple[DependencyHealth, Optional[str]]:
    """Report whether a metadata generator provider is configured."""
    from app.services.llm_factory import LLMStartupError, get_llm_status

    try:
        llm_status = get_llm_status()
    except LLMStartupError as e:
        return DependencyHealth(status="error", error=str(e)), None

    if not llm_status.enabled:
        return DependencyHealth(status="disabled"), None
    return DependencyHealth(status="ok"), llm_status.provider_resolved


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Check health of service and its dependencies.

    A missing LLM provider degrades the service (jobs cannot be processed)
    but enqueueing and stats still work.
    """
    database = await check_database_health(_db_pool)
    llm, provider = check_llm_health()

    if database.status != "ok":
        overall_status = "error"
    elif llm.status != "ok":
        overall_status = "degraded"
    else:
        overall_status = "ok"

    poller = get_poller()
    response = HealthResponse(
        status=overall_status,
        database=database,
        llm=llm,
        llm_provider=provider,
        seo_models=list(settings.seo_models),
        poller_running=bool(poller and poller.is_running),
        version=__version__,
    )

    logger.info(
        "Health check completed",
        status=overall_status,
        database=database.status,
        llm=llm.status,
    )
    return response
