"""Pydantic models for request/response validation."""

from app.schemas.common import DependencyHealth, ErrorResponse, HealthResponse

__all__ = ["DependencyHealth", "ErrorResponse", "HealthResponse"]
