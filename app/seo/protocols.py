"""Storage and generator interfaces the SEO queue depends on.

The enqueuer, worker and stats aggregator only talk to these protocols;
the asyncpg repositories in app.repositories implement them.
"""

from typing import Any, Optional, Protocol
from uuid import UUID

from app.seo.models import (
    ContentRecord,
    GenerationContext,
    NewJob,
    SeoJob,
    SeoMetadata,
)
from app.seo.types import SeoJobStatus, TargetKind


class SeoJobStore(Protocol):
    """Persistence for seo_jobs rows."""

    async def insert_jobs(self, jobs: list[NewJob]) -> list[UUID]:
        """Insert jobs, silently skipping targets that already have a row.

        Targets whose content row no longer exists are skipped as well.

        Returns:
            IDs of the rows actually inserted
        """
        ...

    async def upsert_pending(self, jobs: list[NewJob]) -> list[SeoJob]:
        """Reset-or-insert jobs as pending with a fresh context.

        Rows currently processing are left untouched and not returned.
        """
        ...

    async def list_pending(self, limit: int) -> list[SeoJob]:
        """Oldest pending jobs first."""
        ...

    async def claim(self, job_id: UUID) -> Optional[SeoJob]:
        """Atomically move a job from pending to processing.

        Returns None when the job is no longer pending (claimed elsewhere).
        """
        ...

    async def mark_completed(self, job_id: UUID) -> None:
        ...

    async def mark_failed(self, job_id: UUID, error: str) -> None:
        ...

    async def requeue_failed(self) -> int:
        """Reset every failed job to pending. Returns rows reset."""
        ...

    async def requeue_stale(self, older_than_minutes: int) -> int:
        """Reset processing jobs not updated within the window."""
        ...

    async def count_by_kind_and_status(
        self,
    ) -> list[tuple[TargetKind, SeoJobStatus, int]]:
        ...

    async def list_jobs(
        self,
        status: Optional[SeoJobStatus] = None,
        kind: Optional[TargetKind] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SeoJob], int]:
        ...

    async def get(self, job_id: UUID) -> Optional[SeoJob]:
        ...

    async def get_for_target(
        self, kind: TargetKind, target_id: UUID
    ) -> Optional[SeoJob]:
        ...


class ContentStore(Protocol):
    """Read projection and SEO write-back over the content tables."""

    async def get_record(
        self, kind: TargetKind, target_id: UUID
    ) -> Optional[ContentRecord]:
        ...

    async def list_eligible(self, kind: TargetKind) -> list[ContentRecord]:
        """Records eligible for bulk enqueueing (e.g. approved podcasts)."""
        ...

    async def list_without_jobs(self, kind: TargetKind) -> list[ContentRecord]:
        """Records with no seo_jobs row at all."""
        ...

    async def list_with_metadata(self, kind: TargetKind) -> list[ContentRecord]:
        """Eligible records that already carry seo_metadata."""
        ...

    async def count(self, kind: TargetKind) -> int:
        ...

    async def write_metadata(
        self,
        kind: TargetKind,
        target_id: UUID,
        metadata: dict[str, Any],
        slug: Optional[str],
    ) -> bool:
        """Write seo_metadata (and slug when given).

        Returns:
            False if the target row does not exist
        """
        ...

    async def slug_taken(
        self, kind: TargetKind, slug: str, exclude_id: UUID
    ) -> bool:
        """True if another record of this kind already uses the slug."""
        ...


class MetadataGenerator(Protocol):
    """External generative service producing SEO metadata."""

    async def generate(self, context: GenerationContext) -> SeoMetadata:
        ...
