"""Shared utilities for admin modules.

- JSON serialization for API responses
- Database pool access helpers
- Pagination constants
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status


class PaginationDefaults:
    """Standard pagination limits for admin endpoints."""

    DEFAULT_LIMIT = 50
    MAX_LIMIT = 200


def json_serializable(obj: Any) -> Any:
    """Convert objects to JSON-serializable format.

    Handles datetime/date, UUID, Decimal, enums (via their str value),
    nested dicts/lists, and objects exposing to_dict().
    """
    if obj is None:
        return None
    if isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, dict):
        return {str(k): json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [json_serializable(item) for item in obj]
    if hasattr(obj, "to_dict"):
        return json_serializable(obj.to_dict())
    return str(obj)


def require_db_pool(pool: Any, service_name: str = "Database") -> Any:
    """Validate that database pool is available.

    Raises:
        HTTPException: 503 if pool is None
    """
    if pool is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{service_name} connection not available",
        )
    return pool


__all__ = [
    "PaginationDefaults",
    "json_serializable",
    "require_db_pool",
]
