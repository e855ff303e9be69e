"""Security dependencies for FastAPI routes.

Provides admin token authentication (constant-time compare).
"""

import hmac
import os

import structlog
from fastapi import HTTPException, Request, status

logger = structlog.get_logger(__name__)


def require_admin_token(request: Request) -> bool:
    """
    Require valid admin token for protected routes.

    Security guarantees:
    - Uses hmac.compare_digest() for constant-time comparison
    - NO debug bypass (LOG_LEVEL has no effect)
    - Localhost bypass only when ALLOW_LOCALHOST_ADMIN=true and no token is set
    - Returns 401 for missing token, 403 for invalid token

    Usage:
        @router.post("/admin/seo/process")
        async def process(..., _: bool = Depends(require_admin_token)):
            ...
    """
    admin_token = os.environ.get("ADMIN_TOKEN")

    if not admin_token:
        allow_localhost = (
            os.environ.get("ALLOW_LOCALHOST_ADMIN", "false").lower() == "true"
        )
        if allow_localhost:
            host = request.headers.get("host", "")
            if "localhost" in host or "127.0.0.1" in host:
                logger.warning(
                    "Admin access via localhost (no token)",
                    path=request.url.path,
                    client=request.client.host if request.client else "unknown",
                )
                return True

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="ADMIN_TOKEN not configured. Contact system administrator.",
        )

    provided_token = request.headers.get("X-Admin-Token")
    if not provided_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin token required. Provide X-Admin-Token header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not hmac.compare_digest(provided_token.encode(), admin_token.encode()):
        logger.warning(
            "Invalid admin token attempt",
            path=request.url.path,
            client=request.client.host if request.client else "unknown",
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token",
        )

    return True
