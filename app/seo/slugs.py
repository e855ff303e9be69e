"""Slug normalization and collision checks."""

import re
import unicodedata
from typing import Optional
from uuid import UUID

import structlog

from app.seo.protocols import ContentStore
from app.seo.types import TargetKind

logger = structlog.get_logger(__name__)

MAX_SLUG_LENGTH = 50

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s_-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Turn arbitrary text into a URL slug.

    "Hello, World!  Ep. 2" -> "hello-world-ep-2"
    """
    normalized = unicodedata.normalize("NFKD", text or "")
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    cleaned = _NON_SLUG_CHARS.sub("", ascii_text)
    slug = _SEPARATORS.sub("-", cleaned).strip("-")
    return slug[:max_length].rstrip("-")


class SlugResolver:
    """Decides whether a generated slug can be written to a record.

    A collision is not an error: the record simply keeps its current slug.
    Check-then-write without locking; a rare race leaves the slug unchanged
    on the next write attempt rather than corrupting data.
    """

    def __init__(self, content_store: ContentStore):
        self._content = content_store

    async def resolve(
        self, candidate: Optional[str], kind: TargetKind, target_id: UUID
    ) -> Optional[str]:
        """Return the slug to apply, or None to leave the slug untouched."""
        if not candidate or not candidate.strip():
            return None

        if await self._content.slug_taken(kind, candidate, target_id):
            logger.info(
                "seo_slug_collision",
                slug=candidate,
                target_kind=kind.value,
                target_id=str(target_id),
            )
            return None

        return candidate
