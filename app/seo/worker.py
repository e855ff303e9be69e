"""Batch worker - claims pending SEO jobs and executes them.

Each invocation drains at most `batch_size` pending jobs, oldest first.
Jobs run with bounded concurrency; a failure in one job is recorded on that
job and never aborts the rest of the batch. Only a failure to list pending
jobs propagates to the caller.
"""

import asyncio
import time
from enum import Enum
from typing import Optional
from uuid import UUID

import structlog
from prometheus_client import Counter, Gauge, Histogram

from app.seo.errors import GeneratorTimeoutError, TargetNotFoundError
from app.seo.models import BatchResult, GenerationContext, SeoJob, SeoMetadata
from app.seo.protocols import ContentStore, MetadataGenerator, SeoJobStore
from app.seo.slugs import SlugResolver, slugify
from app.seo.types import TargetKind

logger = structlog.get_logger(__name__)


# =============================================================================
# Prometheus Metrics
# =============================================================================

SEO_JOBS_PROCESSED_TOTAL = Counter(
    "seo_jobs_processed_total",
    "SEO jobs processed by the batch worker",
    ["kind", "status"],  # completed, failed, skipped
)
SEO_JOBS_INFLIGHT = Gauge(
    "seo_jobs_inflight",
    "SEO jobs currently executing",
)
SEO_BATCH_DURATION = Histogram(
    "seo_batch_duration_seconds",
    "Wall-clock duration of one process_batch call",
    buckets=[0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600],
)


class _Outcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOT_STARTED = "not_started"


class SeoBatchWorker:
    """Executes claimed SEO jobs against the metadata generator."""

    def __init__(
        self,
        job_store: SeoJobStore,
        content_store: ContentStore,
        generator: MetadataGenerator,
        concurrency: int = 3,
        generator_timeout_s: Optional[float] = 30.0,
    ):
        """
        Initialize worker.

        Args:
            job_store: Job persistence
            content_store: Content projection / write-back
            generator: Metadata generator
            concurrency: Max jobs in flight per batch
            generator_timeout_s: Per-call generator timeout (None = unbounded)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._jobs = job_store
        self._content = content_store
        self._generator = generator
        self._slugs = SlugResolver(content_store)
        self._concurrency = concurrency
        self._timeout = generator_timeout_s
        # Serialises slug check and write per kind within this process
        self._slug_locks: dict[TargetKind, asyncio.Lock] = {}

    async def process_batch(
        self,
        batch_size: int,
        stop_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Process up to batch_size pending jobs.

        Args:
            batch_size: Max jobs to take from the queue (must be positive)
            stop_event: When set, no further jobs are claimed; jobs already
                in flight run to completion

        Returns:
            BatchResult with success/failure counts and up to 5 error samples
        """
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer")

        start = time.perf_counter()
        result = BatchResult()

        jobs = await self._jobs.list_pending(batch_size)
        if not jobs:
            logger.info("seo_batch_empty", batch_size=batch_size)
            return result

        logger.info(
            "seo_batch_started",
            batch_size=batch_size,
            jobs=len(jobs),
            concurrency=self._concurrency,
        )

        semaphore = asyncio.Semaphore(self._concurrency)
        outcomes = await asyncio.gather(
            *[self._run_with_semaphore(job, semaphore, stop_event) for job in jobs]
        )

        not_started = 0
        for job, (outcome, error) in zip(jobs, outcomes):
            if outcome is _Outcome.COMPLETED:
                result.succeeded += 1
            elif outcome is _Outcome.FAILED:
                result.failed += 1
                result.record_error(job.id, error or "unknown error")
            elif outcome is _Outcome.SKIPPED:
                result.skipped += 1
                if error:
                    result.record_error(job.id, error)
            else:
                not_started += 1

        elapsed = time.perf_counter() - start
        result.duration_ms = int(elapsed * 1000)
        SEO_BATCH_DURATION.observe(elapsed)

        logger.info(
            "seo_batch_complete",
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=result.skipped,
            not_started=not_started,
            duration_ms=result.duration_ms,
        )
        return result

    async def _run_with_semaphore(
        self,
        job: SeoJob,
        semaphore: asyncio.Semaphore,
        stop_event: Optional[asyncio.Event],
    ) -> tuple[_Outcome, Optional[str]]:
        async with semaphore:
            if stop_event is not None and stop_event.is_set():
                return _Outcome.NOT_STARTED, None
            SEO_JOBS_INFLIGHT.inc()
            try:
                outcome, error = await self._process_job(job)
            finally:
                SEO_JOBS_INFLIGHT.dec()
            SEO_JOBS_PROCESSED_TOTAL.labels(
                kind=job.target_kind.value, status=outcome.value
            ).inc()
            return outcome, error

    async def _process_job(self, job: SeoJob) -> tuple[_Outcome, Optional[str]]:
        log = logger.bind(
            job_id=str(job.id),
            target_kind=job.target_kind.value,
            target_id=str(job.target_id),
        )

        try:
            claimed = await self._jobs.claim(job.id)
        except Exception as e:
            # Row is left as-is; a pending job is retried by the next batch
            message = f"claim failed: {str(e) or type(e).__name__}"
            log.warning("seo_job_claim_error", error=message, error_type=type(e).__name__)
            return _Outcome.SKIPPED, message

        if claimed is None:
            log.info("seo_job_claim_lost")
            return _Outcome.SKIPPED, None

        try:
            await self._execute(claimed)
        except Exception as e:
            message = str(e) or type(e).__name__
            log.warning("seo_job_failed", error=message, error_type=type(e).__name__)
            try:
                await self._jobs.mark_failed(claimed.id, message)
            except Exception as mark_error:
                # Job stays processing; the stale sweep picks it up
                log.error("seo_job_mark_failed_error", error=str(mark_error))
            return _Outcome.FAILED, message

        log.info("seo_job_completed")
        return _Outcome.COMPLETED, None

    async def generate_and_write(
        self,
        kind: TargetKind,
        target_id: UUID,
        context: GenerationContext,
    ) -> SeoMetadata:
        """Generate metadata for one target and write it to the record.

        The slug is applied only when no other record of the kind holds it.
        Jobs of one kind check and write their slugs one at a time.

        Raises:
            GeneratorTimeoutError: Generator exceeded the timeout
            TargetNotFoundError: The content record no longer exists
        """
        metadata = await self._generate(context)

        if metadata.slug:
            async with self._slug_lock(kind):
                slug = await self._slugs.resolve(slugify(metadata.slug), kind, target_id)
                written = await self._content.write_metadata(
                    kind, target_id, metadata.to_payload(), slug
                )
        else:
            written = await self._content.write_metadata(
                kind, target_id, metadata.to_payload(), None
            )
        if not written:
            raise TargetNotFoundError(kind, target_id)
        return metadata

    def _slug_lock(self, kind: TargetKind) -> asyncio.Lock:
        lock = self._slug_locks.get(kind)
        if lock is None:
            lock = self._slug_locks[kind] = asyncio.Lock()
        return lock

    async def _execute(self, job: SeoJob) -> None:
        await self.generate_and_write(job.target_kind, job.target_id, job.context)
        await self._jobs.mark_completed(job.id)

    async def _generate(self, context: GenerationContext) -> SeoMetadata:
        if self._timeout is None:
            return await self._generator.generate(context)
        try:
            return await asyncio.wait_for(
                self._generator.generate(context), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            raise GeneratorTimeoutError(self._timeout)
