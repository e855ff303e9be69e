"""FastAPI dependencies for auth."""

from app.deps.security import require_admin_token

__all__ = ["require_admin_token"]
