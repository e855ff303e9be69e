"""Queue statistics rollup for operator dashboards."""

import asyncio

import structlog

from app.seo.models import KindStats, QueueStats
from app.seo.protocols import ContentStore, SeoJobStore
from app.seo.types import TargetKind

logger = structlog.get_logger(__name__)


class SeoStatsAggregator:
    """Per-kind job counts by status plus content totals.

    Uncached: every call rescans the job store. Meant for dashboard polling
    at a seconds-to-minutes cadence.
    """

    def __init__(self, job_store: SeoJobStore, content_store: ContentStore):
        self._jobs = job_store
        self._content = content_store

    async def get_stats(self) -> QueueStats:
        by_kind = {kind: KindStats() for kind in TargetKind}

        for kind, status, count in await self._jobs.count_by_kind_and_status():
            by_kind[kind].add(status, count)

        # Content totals are independent of jobs: a kind may have content
        # with no job at all.
        totals = await asyncio.gather(
            *[self._content.count(kind) for kind in TargetKind]
        )
        for kind, total in zip(TargetKind, totals):
            by_kind[kind].total_content = total

        logger.debug(
            "seo_stats_computed",
            pending=sum(s.pending for s in by_kind.values()),
            failed=sum(s.failed for s in by_kind.values()),
        )
        return QueueStats(by_kind=by_kind)
