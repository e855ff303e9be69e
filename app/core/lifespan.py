"""Application lifespan management - startup and shutdown logic."""

import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg
import structlog
from fastapi import FastAPI

from app import __version__
from app.admin import set_db_pool as set_admin_db_pool
from app.admin import set_seo_service
from app.config import Settings, get_settings
from app.routers import health
from app.seo.poller import SeoQueuePoller, set_poller
from app.seo.service import SeoJobService

logger = structlog.get_logger(__name__)

# Global clients - accessed by other modules
_db_pool: Optional[asyncpg.Pool] = None
_seo_poller: Optional[SeoQueuePoller] = None


def get_db_pool() -> Optional[asyncpg.Pool]:
    """Get the database connection pool."""
    return _db_pool


async def create_db_pool(settings: Settings) -> asyncpg.Pool:
    """Create the asyncpg pool from resolved settings.

    Raises:
        RuntimeError: No PostgreSQL connection configured
    """
    postgres_url = settings.postgres_url
    if not postgres_url:
        raise RuntimeError(
            "Database connection not configured. Set DATABASE_URL or SUPABASE_DB_PASSWORD"
        )

    logger.info(
        "Attempting database connection",
        url_prefix=postgres_url[:50] + "...",
    )
    return await asyncpg.create_pool(
        postgres_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        ssl=settings.db_ssl_mode,
        timeout=10,  # Short connection timeout to avoid blocking startup
        command_timeout=30,
        statement_cache_size=0,  # Disable for pgbouncer transaction mode
    )


async def _init_database(settings: Settings) -> Optional[asyncpg.Pool]:
    """Initialize the pool; the service runs degraded (503s) without it."""
    try:
        pool = await create_db_pool(settings)
    except Exception as e:
        logger.error(
            "Failed to initialize database pool - SEO endpoints will be unavailable",
            error=str(e),
            traceback=traceback.format_exc(),
        )
        return None

    logger.info(
        "Database pool initialized",
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    set_admin_db_pool(pool)
    health.set_db_pool(pool)
    return pool


def _init_generator(settings: Settings):
    """Build the LLM metadata generator, or None when no provider is configured."""
    from app.seo.generator import LLMMetadataGenerator
    from app.services.llm_factory import LLMStartupError, get_llm, get_llm_status

    try:
        llm = get_llm()
    except LLMStartupError as e:
        logger.error("LLM startup failed", error=str(e))
        raise

    status = get_llm_status()
    logger.info(
        "LLM configuration",
        provider_config=status.provider_config,
        provider_resolved=status.provider_resolved,
        models=status.models,
        llm_enabled=status.enabled,
    )
    if llm is None:
        return None

    return LLMMetadataGenerator(
        llm,
        models=settings.seo_models,
        max_tokens=settings.seo_max_tokens,
        fallback_enabled=settings.seo_fallback_enabled,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    global _db_pool, _seo_poller

    settings = get_settings()
    logger.info(
        "Starting SEO Metadata Queue",
        version=__version__,
        host=settings.service_host,
        port=settings.service_port,
        batch_size=settings.seo_batch_size,
        concurrency=settings.seo_worker_concurrency,
    )

    # LLMStartupError aborts startup before any connection is opened
    generator = _init_generator(settings)
    _db_pool = await _init_database(settings)

    if _db_pool:
        service = SeoJobService.from_pool(_db_pool, settings, generator)
        set_seo_service(service)

        if settings.seo_poll_enabled:
            _seo_poller = SeoQueuePoller(service, settings)
            set_poller(_seo_poller)
            await _seo_poller.start()
        else:
            logger.info("SEO queue polling disabled (SEO_POLL_ENABLED=false)")

    yield

    logger.info("Shutting down SEO Metadata Queue")

    # Stop poller before the pool closes
    if _seo_poller:
        await _seo_poller.stop()
        set_poller(None)
        _seo_poller = None

    set_seo_service(None)

    if _db_pool:
        await _db_pool.close()
        logger.info("Database pool closed")
        _db_pool = None
