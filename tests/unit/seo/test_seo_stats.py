"""Tests for queue statistics."""

import pytest

from app.seo.errors import MetadataGenerationError
from app.seo.stats import SeoStatsAggregator
from app.seo.types import SeoJobStatus, TargetKind


@pytest.fixture
def aggregator(job_store, content_store):
    return SeoStatsAggregator(job_store, content_store)


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_store_reports_every_kind(self, aggregator):
        stats = await aggregator.get_stats()

        assert set(stats.by_kind) == set(TargetKind)
        for kind_stats in stats.by_kind.values():
            assert kind_stats.total_jobs == 0
            assert kind_stats.total_content == 0

    @pytest.mark.asyncio
    async def test_counts_by_status(self, aggregator, queue_kind, job_store):
        await queue_kind(TargetKind.COLLECTION, ["A", "B", "C"])
        [first, second, _] = sorted(job_store.jobs.values(), key=lambda j: j.created_at)
        job_store.set_status(first.id, SeoJobStatus.COMPLETED)
        job_store.set_status(second.id, SeoJobStatus.FAILED)

        stats = await aggregator.get_stats()

        collection = stats.by_kind[TargetKind.COLLECTION]
        assert collection.pending == 1
        assert collection.completed == 1
        assert collection.failed == 1
        assert collection.processing == 0
        assert collection.total_jobs == 3

    @pytest.mark.asyncio
    async def test_content_total_independent_of_jobs(
        self, aggregator, content_store, queue_kind
    ):
        await queue_kind(TargetKind.PROFILE, ["Ada"])
        content_store.add(TargetKind.PROFILE, "Grace")
        content_store.add(TargetKind.PROFILE, "Linus")

        stats = await aggregator.get_stats()

        profile = stats.by_kind[TargetKind.PROFILE]
        assert profile.total_content == 3
        assert profile.total_jobs == 1

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self, aggregator, queue_kind):
        await queue_kind(TargetKind.ITEM, ["Ep 1", "Ep 2"])

        stats = await aggregator.get_stats()

        assert stats.by_kind[TargetKind.ITEM].pending == 2
        assert stats.by_kind[TargetKind.COLLECTION].pending == 0

    @pytest.mark.asyncio
    async def test_matches_worker_outcome(self, service, queue_kind, generator):
        await queue_kind(TargetKind.COLLECTION, ["Good", "Bad"])
        generator.behaviors["Bad"] = MetadataGenerationError("bad output")
        await service.process_batch()

        data = (await service.get_stats()).to_dict()

        assert data["stats"]["collection"]["completed"] == 1
        assert data["stats"]["collection"]["failed"] == 1
        assert data["stats"]["collection"]["total_content"] == 2
