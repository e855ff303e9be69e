"""API routers for the SEO Metadata Queue."""

from app.routers import health, metrics

__all__ = ["health", "metrics"]
