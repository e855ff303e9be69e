"""Enqueuer - discovers content needing SEO metadata and queues jobs."""

from typing import Optional
from uuid import UUID

import structlog

from app.seo.errors import JobInProgressError, TargetNotFoundError
from app.seo.kinds import get_kind_table
from app.seo.models import ContentRecord, EnqueueResult, GenerationContext, NewJob, SeoJob
from app.seo.protocols import ContentStore, SeoJobStore
from app.seo.types import TargetKind

logger = structlog.get_logger(__name__)


class SeoEnqueuer:
    """Inserts pending jobs, at most one per (kind, target_id).

    Every path goes through the job store's conflict-skipping insert, so
    repeating a call never queues duplicate work. The only way to put a
    target with an existing job back in the queue is regenerate().
    """

    def __init__(self, job_store: SeoJobStore, content_store: ContentStore):
        self._jobs = job_store
        self._content = content_store

    async def enqueue_for_approved(self, kind: TargetKind) -> int:
        """Queue every eligible record of a kind.

        Returns:
            Number of job rows actually inserted (0 on a repeat call)
        """
        records = await self._content.list_eligible(kind)
        inserted = await self._insert(kind, records)

        logger.info(
            "seo_enqueue_approved",
            target_kind=kind.value,
            candidates=len(records),
            inserted=inserted,
        )
        return inserted

    async def enqueue_missing(self, kind: TargetKind) -> EnqueueResult:
        """Queue records that have no job row at all."""
        total = await self._content.count(kind)
        records = await self._content.list_without_jobs(kind)
        inserted = await self._insert(kind, records)

        result = EnqueueResult(kind=kind, inserted=inserted, total=total)
        logger.info(
            "seo_enqueue_missing",
            target_kind=kind.value,
            candidates=len(records),
            inserted=inserted,
            total=total,
        )
        return result

    async def enqueue_one(
        self,
        kind: TargetKind,
        target_id: UUID,
        context: Optional[GenerationContext] = None,
    ) -> bool:
        """Queue a single target.

        When no context is supplied it is built from the current record,
        including the kind's additional context.

        Returns:
            True if a job was inserted, False if one already existed

        Raises:
            TargetNotFoundError: context omitted and the record is missing
        """
        if context is None:
            context = await self._context_for(kind, target_id)

        ids = await self._jobs.insert_jobs(
            [NewJob(target_kind=kind, target_id=target_id, context=context)]
        )
        logger.info(
            "seo_enqueue_one",
            target_kind=kind.value,
            target_id=str(target_id),
            inserted=bool(ids),
        )
        return bool(ids)

    async def regenerate(
        self,
        kind: TargetKind,
        target_id: UUID,
        context: Optional[GenerationContext] = None,
    ) -> SeoJob:
        """Put a target back in the queue even if it already has a job.

        Resets the target's single job row in place (or creates it).

        Raises:
            TargetNotFoundError: context omitted and the record is missing
            JobInProgressError: the target's job is currently processing
        """
        if context is None:
            context = await self._context_for(kind, target_id)

        jobs = await self._jobs.upsert_pending(
            [NewJob(target_kind=kind, target_id=target_id, context=context)]
        )
        if not jobs:
            raise JobInProgressError(kind, target_id)

        logger.info(
            "seo_regenerate_one",
            target_kind=kind.value,
            target_id=str(target_id),
            job_id=str(jobs[0].id),
        )
        return jobs[0]

    async def regenerate_existing(self, kind: TargetKind) -> int:
        """Re-queue every eligible record that already has metadata.

        Returns:
            Number of job rows reset or created
        """
        records = await self._content.list_with_metadata(kind)
        if not records:
            return 0

        kt = get_kind_table(kind)
        jobs = await self._jobs.upsert_pending(
            [
                NewJob(target_kind=kind, target_id=r.id, context=kt.build_context(r))
                for r in records
            ]
        )
        logger.info(
            "seo_regenerate_existing",
            target_kind=kind.value,
            candidates=len(records),
            queued=len(jobs),
        )
        return len(jobs)

    async def _insert(self, kind: TargetKind, records: list[ContentRecord]) -> int:
        if not records:
            return 0

        kt = get_kind_table(kind)
        jobs = [
            NewJob(target_kind=kind, target_id=r.id, context=kt.build_context(r))
            for r in records
        ]
        ids = await self._jobs.insert_jobs(jobs)
        return len(ids)

    async def _context_for(
        self, kind: TargetKind, target_id: UUID
    ) -> GenerationContext:
        record = await self._content.get_record(kind, target_id)
        if record is None:
            raise TargetNotFoundError(kind, target_id)
        return get_kind_table(kind).build_context(record, enriched=True)
