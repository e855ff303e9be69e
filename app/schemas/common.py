"""Common schemas: health checks and error responses."""

from typing import Optional

from pydantic import BaseModel, Field


# ===========================================
# Health & Error Responses
# ===========================================


class DependencyHealth(BaseModel):
    """Health status for a dependency."""

    status: str = Field(..., description="Dependency status (ok/error/disabled)")
    latency_ms: Optional[float] = Field(None, description="Response latency in ms")
    error: Optional[str] = Field(None, description="Error message if unhealthy")


class HealthResponse(BaseModel):
    """Response for health endpoint."""

    status: str = Field(..., description="Overall service status")
    database: DependencyHealth = Field(..., description="PostgreSQL health")
    llm: DependencyHealth = Field(..., description="Metadata generator provider")
    llm_provider: Optional[str] = Field(None, description="Resolved LLM provider")
    seo_models: list[str] = Field(..., description="Models tried in order")
    poller_running: bool = Field(..., description="Whether the SEO poller is running")
    version: str = Field(..., description="Service version")


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(..., description="Error message")
    retryable: bool = Field(False, description="Whether the request can be retried")
