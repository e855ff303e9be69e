"""Repository for SEO job queue operations."""

import json
from collections import defaultdict
from typing import Any, Optional
from uuid import UUID

import structlog

from app.seo.kinds import get_kind_table
from app.seo.models import GenerationContext, NewJob, SeoJob
from app.seo.types import SeoJobStatus, TargetKind

logger = structlog.get_logger(__name__)


def _affected_rows(result: str) -> int:
    """Parse asyncpg status strings like "UPDATE 3"."""
    try:
        return int(result.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class SeoJobRepository:
    """asyncpg-backed store for seo_jobs rows."""

    def __init__(self, pool):
        self._pool = pool

    async def insert_jobs(self, jobs: list[NewJob]) -> list[UUID]:
        """Insert jobs, skipping targets that already have a row.

        The target's content row is re-checked inside the same statement, so
        a record deleted after selection never gets an orphan job.
        """
        if not jobs:
            return []

        inserted: list[UUID] = []
        async with self._pool.acquire() as conn:
            for kind, group in _group_by_kind(jobs).items():
                kt = get_kind_table(kind)
                query = f"""
                    INSERT INTO seo_jobs (target_kind, target_id, context)
                    SELECT $1, j.target_id, j.context::jsonb
                    FROM unnest($2::uuid[], $3::text[]) AS j(target_id, context)
                    WHERE EXISTS (
                        SELECT 1 FROM {kt.table} c WHERE c.id = j.target_id
                    )
                    ON CONFLICT (target_id, target_kind) DO NOTHING
                    RETURNING id
                """
                rows = await conn.fetch(
                    query,
                    kind.value,
                    [job.target_id for job in group],
                    [job.context.model_dump_json() for job in group],
                )
                inserted.extend(row["id"] for row in rows)

        logger.info("seo_jobs_inserted", requested=len(jobs), inserted=len(inserted))
        return inserted

    async def upsert_pending(self, jobs: list[NewJob]) -> list[SeoJob]:
        """Reset-or-insert jobs as pending; rows mid-processing are skipped."""
        if not jobs:
            return []

        result: list[SeoJob] = []
        async with self._pool.acquire() as conn:
            for kind, group in _group_by_kind(jobs).items():
                kt = get_kind_table(kind)
                query = f"""
                    INSERT INTO seo_jobs (target_kind, target_id, context)
                    SELECT $1, j.target_id, j.context::jsonb
                    FROM unnest($2::uuid[], $3::text[]) AS j(target_id, context)
                    WHERE EXISTS (
                        SELECT 1 FROM {kt.table} c WHERE c.id = j.target_id
                    )
                    ON CONFLICT (target_id, target_kind) DO UPDATE SET
                        status = 'pending',
                        context = EXCLUDED.context,
                        error_message = NULL,
                        updated_at = now()
                    WHERE seo_jobs.status <> 'processing'
                    RETURNING *
                """
                rows = await conn.fetch(
                    query,
                    kind.value,
                    [job.target_id for job in group],
                    [job.context.model_dump_json() for job in group],
                )
                result.extend(self._row_to_job(row) for row in rows)

        logger.info("seo_jobs_reset_pending", requested=len(jobs), queued=len(result))
        return result

    async def list_pending(self, limit: int) -> list[SeoJob]:
        """Oldest pending jobs first (FIFO)."""
        query = """
            SELECT * FROM seo_jobs
            WHERE status = 'pending'
            ORDER BY created_at, id
            LIMIT $1
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, limit)
        return [self._row_to_job(row) for row in rows]

    async def claim(self, job_id: UUID) -> Optional[SeoJob]:
        """Compare-and-set pending -> processing.

        A single conditional UPDATE; a concurrent claimer that loses the race
        gets no row back.
        """
        query = """
            UPDATE seo_jobs SET
                status = 'processing',
                updated_at = now()
            WHERE id = $1 AND status = 'pending'
            RETURNING *
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, job_id)

        if row is None:
            return None
        logger.debug("seo_job_claimed", job_id=str(job_id))
        return self._row_to_job(row)

    async def mark_completed(self, job_id: UUID) -> None:
        query = """
            UPDATE seo_jobs SET
                status = 'completed',
                error_message = NULL,
                updated_at = now()
            WHERE id = $1 AND status = 'processing'
        """
        async with self._pool.acquire() as conn:
            await conn.execute(query, job_id)

    async def mark_failed(self, job_id: UUID, error: str) -> None:
        query = """
            UPDATE seo_jobs SET
                status = 'failed',
                error_message = $2,
                updated_at = now()
            WHERE id = $1 AND status = 'processing'
        """
        async with self._pool.acquire() as conn:
            await conn.execute(query, job_id, error)

    async def requeue_failed(self) -> int:
        """Reset every failed job to pending."""
        query = """
            UPDATE seo_jobs SET
                status = 'pending',
                error_message = NULL,
                updated_at = now()
            WHERE status = 'failed'
        """
        async with self._pool.acquire() as conn:
            result = await conn.execute(query)
        count = _affected_rows(result)
        logger.info("seo_failed_jobs_requeued", count=count)
        return count

    async def requeue_stale(self, older_than_minutes: int) -> int:
        """Reset processing jobs whose last update is older than the window."""
        query = """
            UPDATE seo_jobs SET
                status = 'pending',
                updated_at = now()
            WHERE status = 'processing'
              AND updated_at < now() - make_interval(mins => $1)
        """
        async with self._pool.acquire() as conn:
            result = await conn.execute(query, older_than_minutes)
        count = _affected_rows(result)
        if count > 0:
            logger.warning(
                "seo_stale_jobs_requeued",
                count=count,
                older_than_minutes=older_than_minutes,
            )
        return count

    async def count_by_kind_and_status(
        self,
    ) -> list[tuple[TargetKind, SeoJobStatus, int]]:
        query = """
            SELECT target_kind, status, COUNT(*) AS n
            FROM seo_jobs
            GROUP BY target_kind, status
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query)
        return [
            (TargetKind(row["target_kind"]), SeoJobStatus(row["status"]), row["n"])
            for row in rows
        ]

    async def list_jobs(
        self,
        status: Optional[SeoJobStatus] = None,
        kind: Optional[TargetKind] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SeoJob], int]:
        """List jobs newest first with optional filters.

        Returns:
            Tuple of (jobs, total matching count)
        """
        conditions = []
        params: list[Any] = []

        if status:
            params.append(status.value)
            conditions.append(f"status = ${len(params)}")
        if kind:
            params.append(kind.value)
            conditions.append(f"target_kind = ${len(params)}")

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT * FROM seo_jobs
            {where_clause}
            ORDER BY created_at DESC
            LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        """
        count_query = f"SELECT COUNT(*) FROM seo_jobs {where_clause}"

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *params, limit, offset)
            total = await conn.fetchval(count_query, *params)

        return [self._row_to_job(row) for row in rows], total or 0

    async def get(self, job_id: UUID) -> Optional[SeoJob]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM seo_jobs WHERE id = $1", job_id)
        return self._row_to_job(row) if row else None

    async def get_for_target(
        self, kind: TargetKind, target_id: UUID
    ) -> Optional[SeoJob]:
        query = "SELECT * FROM seo_jobs WHERE target_id = $1 AND target_kind = $2"
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, target_id, kind.value)
        return self._row_to_job(row) if row else None

    def _row_to_job(self, row) -> SeoJob:
        """Convert a database row to a SeoJob model."""
        context = row["context"]
        if isinstance(context, str):
            context = json.loads(context)
        return SeoJob(
            id=row["id"],
            target_kind=TargetKind(row["target_kind"]),
            target_id=row["target_id"],
            status=SeoJobStatus(row["status"]),
            context=GenerationContext.from_json(context),
            error_message=row["error_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


def _group_by_kind(jobs: list[NewJob]) -> dict[TargetKind, list[NewJob]]:
    groups: dict[TargetKind, list[NewJob]] = defaultdict(list)
    for job in jobs:
        groups[job.target_kind].append(job)
    return groups
