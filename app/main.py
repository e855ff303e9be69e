"""SEO Metadata Queue - FastAPI Application."""

import logging

import structlog
from fastapi import FastAPI

from app import __version__
from app.admin import router as admin_router
from app.config import get_settings
from app.core.lifespan import lifespan
from app.core.middleware import setup_middleware
from app.core.sentry import init_sentry
from app.routers import health, metrics

settings = get_settings()

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Initialize Sentry (if configured)
init_sentry(settings)

app = FastAPI(
    title="SEO Metadata Queue",
    description="Job queue that generates SEO metadata for podcasts, episodes and people",
    version=__version__,
    lifespan=lifespan,
)

setup_middleware(app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(metrics.router)  # Metrics endpoint (excluded from OpenAPI)
app.include_router(admin_router)  # /admin/seo


@app.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "SEO Metadata Queue",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.service_host,
        port=settings.service_port,
        log_level=settings.log_level.lower(),
    )
