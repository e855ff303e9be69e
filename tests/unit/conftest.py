"""Shared fixtures for SEO queue tests.

In-memory job and content stores that honour the same contracts as the
Postgres repositories: one job per (target_id, kind), claim is a
compare-and-set, job inserts re-check that the target row exists. Every
status change goes through ALLOWED_TRANSITIONS.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from uuid import UUID, uuid4

import pytest

from app.seo.kinds import get_kind_table
from app.seo.models import (
    ContentRecord,
    GenerationContext,
    NewJob,
    SeoJob,
    SeoMetadata,
)
from app.seo.service import SeoJobService
from app.seo.slugs import slugify
from app.seo.types import SeoJobStatus, TargetKind, can_transition

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class InMemoryContentStore:
    def __init__(self):
        self.rows: dict[tuple[TargetKind, UUID], dict[str, Any]] = {}
        self.job_store: Optional["InMemoryJobStore"] = None
        self.write_calls: list[tuple[TargetKind, UUID, Optional[str]]] = []

    def add(
        self,
        kind: TargetKind,
        title: str,
        description: str = "",
        approved: bool = True,
        slug: Optional[str] = None,
        seo_metadata: Optional[dict] = None,
        **fields: Any,
    ) -> UUID:
        target_id = uuid4()
        self.rows[(kind, target_id)] = {
            "title": title,
            "description": description,
            "approved": approved,
            "slug": slug,
            "seo_metadata": seo_metadata,
            "fields": fields,
        }
        return target_id

    def delete(self, kind: TargetKind, target_id: UUID) -> None:
        del self.rows[(kind, target_id)]

    def exists(self, kind: TargetKind, target_id: UUID) -> bool:
        return (kind, target_id) in self.rows

    def row(self, kind: TargetKind, target_id: UUID) -> dict[str, Any]:
        return self.rows[(kind, target_id)]

    def _record(self, kind: TargetKind, target_id: UUID) -> ContentRecord:
        row = self.rows[(kind, target_id)]
        return ContentRecord(
            id=target_id,
            kind=kind,
            title=row["title"],
            description=row["description"],
            slug=row["slug"],
            has_seo_metadata=row["seo_metadata"] is not None,
            fields=dict(row["fields"]),
        )

    def _ids(self, kind: TargetKind) -> list[UUID]:
        return [tid for (k, tid) in self.rows if k == kind]

    def _eligible(self, kind: TargetKind, target_id: UUID) -> bool:
        # Only collections are gated on approval
        if kind is TargetKind.COLLECTION:
            return self.rows[(kind, target_id)]["approved"]
        return True

    async def get_record(self, kind, target_id):
        if not self.exists(kind, target_id):
            return None
        return self._record(kind, target_id)

    async def list_eligible(self, kind):
        return [
            self._record(kind, tid)
            for tid in self._ids(kind)
            if self._eligible(kind, tid)
        ]

    async def list_without_jobs(self, kind):
        return [
            self._record(kind, tid)
            for tid in self._ids(kind)
            if self.job_store.find(kind, tid) is None
        ]

    async def list_with_metadata(self, kind):
        return [
            self._record(kind, tid)
            for tid in self._ids(kind)
            if self._eligible(kind, tid)
            and self.rows[(kind, tid)]["seo_metadata"] is not None
        ]

    async def count(self, kind):
        return len(self._ids(kind))

    async def write_metadata(self, kind, target_id, metadata, slug):
        self.write_calls.append((kind, target_id, slug))
        if not self.exists(kind, target_id):
            return False
        row = self.rows[(kind, target_id)]
        row["seo_metadata"] = metadata
        if slug is not None:
            row["slug"] = slug
        return True

    async def slug_taken(self, kind, slug, exclude_id):
        return any(
            row["slug"] == slug
            for (k, tid), row in self.rows.items()
            if k == kind and tid != exclude_id
        )


class InMemoryJobStore:
    def __init__(self, content: InMemoryContentStore):
        self.content = content
        self.jobs: dict[UUID, SeoJob] = {}
        self.now = BASE_TIME
        self._seq = 0
        self.fail_list_pending: Optional[Exception] = None
        self.fail_mark_completed: Optional[Exception] = None
        self.claim_attempts: list[UUID] = []

    def _tick(self) -> datetime:
        self._seq += 1
        return self.now + timedelta(microseconds=self._seq)

    def _move(self, job: SeoJob, status: SeoJobStatus, **changes) -> SeoJob:
        if job.status is not status:
            assert can_transition(job.status, status), f"{job.status} -> {status}"
        moved = replace(job, status=status, updated_at=self._tick(), **changes)
        self.jobs[job.id] = moved
        return moved

    def find(self, kind: TargetKind, target_id: UUID) -> Optional[SeoJob]:
        for job in self.jobs.values():
            if job.target_kind == kind and job.target_id == target_id:
                return job
        return None

    def set_status(self, job_id: UUID, status: SeoJobStatus, updated_at=None):
        job = self.jobs[job_id]
        self.jobs[job_id] = replace(
            job, status=status, updated_at=updated_at or job.updated_at
        )

    async def insert_jobs(self, jobs: list[NewJob]) -> list[UUID]:
        inserted = []
        for new in jobs:
            if not self.content.exists(new.target_kind, new.target_id):
                continue
            if self.find(new.target_kind, new.target_id) is not None:
                continue
            ts = self._tick()
            job = SeoJob(
                id=uuid4(),
                target_kind=new.target_kind,
                target_id=new.target_id,
                status=SeoJobStatus.PENDING,
                context=new.context,
                created_at=ts,
                updated_at=ts,
            )
            self.jobs[job.id] = job
            inserted.append(job.id)
        return inserted

    async def upsert_pending(self, jobs: list[NewJob]) -> list[SeoJob]:
        result = []
        for new in jobs:
            if not self.content.exists(new.target_kind, new.target_id):
                continue
            existing = self.find(new.target_kind, new.target_id)
            if existing is None:
                [job_id] = await self.insert_jobs([new])
                result.append(self.jobs[job_id])
                continue
            if existing.status is SeoJobStatus.PROCESSING:
                continue
            result.append(
                self._move(
                    existing,
                    SeoJobStatus.PENDING,
                    context=new.context,
                    error_message=None,
                )
            )
        return result

    async def list_pending(self, limit):
        if self.fail_list_pending:
            raise self.fail_list_pending
        pending = [j for j in self.jobs.values() if j.status is SeoJobStatus.PENDING]
        pending.sort(key=lambda j: (j.created_at, str(j.id)))
        return pending[:limit]

    async def claim(self, job_id):
        self.claim_attempts.append(job_id)
        job = self.jobs.get(job_id)
        if job is None or job.status is not SeoJobStatus.PENDING:
            return None
        return self._move(job, SeoJobStatus.PROCESSING)

    async def mark_completed(self, job_id):
        if self.fail_mark_completed:
            raise self.fail_mark_completed
        job = self.jobs[job_id]
        if job.status is SeoJobStatus.PROCESSING:
            self._move(job, SeoJobStatus.COMPLETED, error_message=None)

    async def mark_failed(self, job_id, error):
        job = self.jobs[job_id]
        if job.status is SeoJobStatus.PROCESSING:
            self._move(job, SeoJobStatus.FAILED, error_message=error)

    async def requeue_failed(self):
        count = 0
        for job in list(self.jobs.values()):
            if job.status is SeoJobStatus.FAILED:
                self._move(job, SeoJobStatus.PENDING, error_message=None)
                count += 1
        return count

    async def requeue_stale(self, older_than_minutes):
        cutoff = self.now - timedelta(minutes=older_than_minutes)
        count = 0
        for job in list(self.jobs.values()):
            if job.status is SeoJobStatus.PROCESSING and job.updated_at < cutoff:
                self._move(job, SeoJobStatus.PENDING)
                count += 1
        return count

    async def count_by_kind_and_status(self):
        counts: dict[tuple[TargetKind, SeoJobStatus], int] = {}
        for job in self.jobs.values():
            key = (job.target_kind, job.status)
            counts[key] = counts.get(key, 0) + 1
        return [(kind, status, n) for (kind, status), n in counts.items()]

    async def list_jobs(self, status=None, kind=None, limit=50, offset=0):
        jobs = [
            j
            for j in self.jobs.values()
            if (status is None or j.status == status)
            and (kind is None or j.target_kind == kind)
        ]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs[offset : offset + limit], len(jobs)

    async def get(self, job_id):
        return self.jobs.get(job_id)

    async def get_for_target(self, kind, target_id):
        return self.find(kind, target_id)


Behavior = Union[SeoMetadata, Exception]


class StubGenerator:
    """Generator double.

    By default returns metadata whose slug is the slugified title. Per-title
    behaviors override that: an exception is raised, a SeoMetadata is
    returned as-is.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.behaviors: dict[str, Behavior] = {}
        self.calls: list[GenerationContext] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = asyncio.Event()
        self.release: Optional[asyncio.Event] = None

    async def generate(self, context: GenerationContext) -> SeoMetadata:
        self.calls.append(context)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.release is not None:
                await self.release.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            behavior = self.behaviors.get(context.title)
            if isinstance(behavior, Exception):
                raise behavior
            if isinstance(behavior, SeoMetadata):
                return behavior
            return SeoMetadata(
                slug=slugify(context.title),
                meta_title=context.title[:60],
                meta_description=f"All about {context.title}",
                keywords=[context.content_type],
            )
        finally:
            self.in_flight -= 1


@pytest.fixture
def content_store():
    return InMemoryContentStore()


@pytest.fixture
def job_store(content_store):
    store = InMemoryJobStore(content_store)
    content_store.job_store = store
    return store


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def service(job_store, content_store, generator):
    return SeoJobService(
        job_store,
        content_store,
        generator,
        batch_size=10,
        concurrency=3,
        generator_timeout_s=1.0,
        stale_minutes=30,
    )


@pytest.fixture
def make_context():
    def _make(title: str = "The Daily Byte", content_type: str = "podcast", **kwargs):
        return GenerationContext(title=title, content_type=content_type, **kwargs)

    return _make


@pytest.fixture
def queue_kind(job_store, content_store):
    """Enqueue `n` fresh records of a kind; returns their target ids."""

    async def _queue(kind: TargetKind, titles: list[str]) -> list[UUID]:
        kt = get_kind_table(kind)
        ids = [content_store.add(kind, title) for title in titles]
        records = [await content_store.get_record(kind, tid) for tid in ids]
        await job_store.insert_jobs(
            [
                NewJob(target_kind=kind, target_id=r.id, context=kt.build_context(r))
                for r in records
            ]
        )
        return ids

    return _queue
