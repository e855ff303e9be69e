"""SEO job service - the single operator-facing entry point.

Wires the enqueuer, batch worker and stats aggregator over one job store and
one content store. HTTP routes, the CLI and the poller all go through here.
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from app.config import Settings
from app.seo.enqueuer import SeoEnqueuer
from app.seo.errors import GeneratorNotConfiguredError, TargetNotFoundError
from app.seo.kinds import get_kind_table
from app.seo.models import (
    BatchResult,
    EnqueueResult,
    GenerationContext,
    QueueStats,
    SeoJob,
    SeoMetadata,
)
from app.seo.protocols import ContentStore, MetadataGenerator, SeoJobStore
from app.seo.stats import SeoStatsAggregator
from app.seo.types import SeoJobStatus, TargetKind
from app.seo.worker import SeoBatchWorker

logger = structlog.get_logger(__name__)


class SeoJobService:
    """Facade over the SEO job queue."""

    def __init__(
        self,
        job_store: SeoJobStore,
        content_store: ContentStore,
        generator: Optional[MetadataGenerator] = None,
        batch_size: int = 10,
        concurrency: int = 3,
        generator_timeout_s: Optional[float] = 30.0,
        stale_minutes: int = 30,
    ):
        self._jobs = job_store
        self._content = content_store
        self._enqueuer = SeoEnqueuer(job_store, content_store)
        self._stats = SeoStatsAggregator(job_store, content_store)
        self._worker: Optional[SeoBatchWorker] = None
        if generator is not None:
            self._worker = SeoBatchWorker(
                job_store,
                content_store,
                generator,
                concurrency=concurrency,
                generator_timeout_s=generator_timeout_s,
            )
        self._batch_size = batch_size
        self._stale_minutes = stale_minutes

    @classmethod
    def from_pool(
        cls,
        pool,
        settings: Settings,
        generator: Optional[MetadataGenerator] = None,
    ) -> "SeoJobService":
        """Build a service backed by the Postgres repositories."""
        from app.repositories.seo_content import SeoContentRepository
        from app.repositories.seo_jobs import SeoJobRepository

        return cls(
            SeoJobRepository(pool),
            SeoContentRepository(pool),
            generator,
            batch_size=settings.seo_batch_size,
            concurrency=settings.seo_worker_concurrency,
            generator_timeout_s=settings.seo_generator_timeout_s,
            stale_minutes=settings.seo_stale_processing_minutes,
        )

    @property
    def can_process(self) -> bool:
        return self._worker is not None

    # =========================================================================
    # Enqueueing
    # =========================================================================

    async def enqueue_for_approved(self, kind: TargetKind) -> int:
        return await self._enqueuer.enqueue_for_approved(kind)

    async def enqueue_missing(self, kind: TargetKind) -> EnqueueResult:
        return await self._enqueuer.enqueue_missing(kind)

    async def enqueue_one(
        self,
        kind: TargetKind,
        target_id: UUID,
        context: Optional[GenerationContext] = None,
    ) -> bool:
        return await self._enqueuer.enqueue_one(kind, target_id, context)

    async def regenerate(
        self,
        kind: TargetKind,
        target_id: UUID,
        context: Optional[GenerationContext] = None,
    ) -> SeoJob:
        return await self._enqueuer.regenerate(kind, target_id, context)

    async def regenerate_existing(self, kind: TargetKind) -> int:
        return await self._enqueuer.regenerate_existing(kind)

    # =========================================================================
    # Processing
    # =========================================================================

    async def process_batch(
        self,
        batch_size: Optional[int] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """Process up to batch_size pending jobs (configured default if None).

        Raises:
            GeneratorNotConfiguredError: No generator was supplied
            ValueError: batch_size is not positive
        """
        worker = self._require_worker()
        size = self._batch_size if batch_size is None else batch_size
        return await worker.process_batch(size, stop_event=stop_event)

    async def generate_now(self, kind: TargetKind, target_id: UUID) -> SeoMetadata:
        """Generate and write metadata for one target, bypassing the queue.

        No job row is read or written. Errors propagate to the caller.
        """
        worker = self._require_worker()
        record = await self._content.get_record(kind, target_id)
        if record is None:
            raise TargetNotFoundError(kind, target_id)

        context = get_kind_table(kind).build_context(record, enriched=True)
        metadata = await worker.generate_and_write(kind, target_id, context)
        logger.info(
            "seo_generated_now",
            target_kind=kind.value,
            target_id=str(target_id),
        )
        return metadata

    # =========================================================================
    # Recovery
    # =========================================================================

    async def requeue_failed(self) -> int:
        return await self._jobs.requeue_failed()

    async def requeue_stale(self, older_than_minutes: Optional[int] = None) -> int:
        """Reset processing jobs stuck longer than the threshold."""
        minutes = self._stale_minutes if older_than_minutes is None else older_than_minutes
        if minutes < 1:
            raise ValueError("older_than_minutes must be >= 1")
        return await self._jobs.requeue_stale(minutes)

    # =========================================================================
    # Inspection
    # =========================================================================

    async def get_stats(self) -> QueueStats:
        return await self._stats.get_stats()

    async def list_jobs(
        self,
        status: Optional[SeoJobStatus] = None,
        kind: Optional[TargetKind] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SeoJob], int]:
        if limit < 1 or offset < 0:
            raise ValueError("limit must be >= 1 and offset >= 0")
        return await self._jobs.list_jobs(
            status=status, kind=kind, limit=limit, offset=offset
        )

    async def get_job(self, job_id: UUID) -> Optional[SeoJob]:
        return await self._jobs.get(job_id)

    async def get_target_summary(
        self, kind: TargetKind, target_id: UUID
    ) -> Optional[dict]:
        """Current title and metadata presence of a job's target."""
        record = await self._content.get_record(kind, target_id)
        if record is None:
            return None
        return {
            "title": record.title,
            "slug": record.slug,
            "has_seo_metadata": record.has_seo_metadata,
        }

    def _require_worker(self) -> SeoBatchWorker:
        if self._worker is None:
            raise GeneratorNotConfiguredError()
        return self._worker
