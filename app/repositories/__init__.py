"""Database repositories for the SEO Metadata Queue."""

from app.repositories.seo_content import SeoContentRepository
from app.repositories.seo_jobs import SeoJobRepository

__all__ = ["SeoContentRepository", "SeoJobRepository"]
