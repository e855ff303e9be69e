"""Admin API package."""

from app.admin.seo import router, set_db_pool, set_seo_service

__all__ = ["router", "set_db_pool", "set_seo_service"]
