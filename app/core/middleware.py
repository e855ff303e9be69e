"""Middleware configuration for the FastAPI application."""

import os
import time
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.routers import metrics
from app.schemas import ErrorResponse

logger = structlog.get_logger(__name__)


def setup_cors(app: FastAPI) -> None:
    """Configure CORS middleware."""
    cors_origins_str = os.environ.get("CORS_ORIGINS", "*")
    if cors_origins_str == "*":
        cors_origins = ["*"]
        logger.warning(
            "CORS_ORIGINS not set, allowing all origins (not for production)"
        )
    else:
        cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]
        logger.info("CORS origins configured", origins=cors_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


def _endpoint_label(request: Request) -> str:
    """Route template for metrics labels (keeps target ids out of label values)."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


async def request_middleware(request: Request, call_next):
    """Add request ID, timing and request metrics to all requests."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

    # Bind request context to logger
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.exception("Request failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(detail="Internal server error", retryable=True).model_dump(),
            headers={
                "X-Request-ID": request_id,
                "X-API-Version": __version__,
            },
        )

    duration_ms = (time.perf_counter() - start_time) * 1000

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
    response.headers["X-API-Version"] = __version__

    # Skip /metrics to avoid recursion
    if request.url.path != "/metrics":
        metrics.record_request(
            method=request.method,
            endpoint=_endpoint_label(request),
            status_code=response.status_code,
            duration=duration_ms / 1000,
        )

    logger.info(
        "Request completed",
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )

    return response


def setup_middleware(app: FastAPI) -> None:
    """Set up all middleware for the application."""
    setup_cors(app)
    app.middleware("http")(request_middleware)
