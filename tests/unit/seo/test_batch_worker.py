"""Tests for the SEO batch worker."""

import asyncio

import pytest

from app.seo.errors import GeneratorTimeoutError, MetadataGenerationError
from app.seo.models import SeoMetadata
from app.seo.types import SeoJobStatus, TargetKind
from app.seo.worker import SeoBatchWorker


@pytest.fixture
def worker(job_store, content_store, generator):
    return SeoBatchWorker(
        job_store, content_store, generator, concurrency=3, generator_timeout_s=1.0
    )


class TestProcessBatch:
    @pytest.mark.asyncio
    async def test_completes_jobs_and_writes_metadata(
        self, worker, queue_kind, job_store, content_store
    ):
        [target] = await queue_kind(TargetKind.COLLECTION, ["Daily Byte"])

        result = await worker.process_batch(10)

        assert result.succeeded == 1
        assert result.failed == 0
        row = content_store.row(TargetKind.COLLECTION, target)
        assert row["seo_metadata"]["meta_title"] == "Daily Byte"
        assert row["slug"] == "daily-byte"
        job = job_store.find(TargetKind.COLLECTION, target)
        assert job.status is SeoJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_respects_batch_size_fifo(self, worker, queue_kind, job_store):
        await queue_kind(TargetKind.ITEM, ["First", "Second", "Third"])

        result = await worker.process_batch(2)

        assert result.succeeded == 2
        statuses = {
            j.context.title: j.status for j in job_store.jobs.values()
        }
        assert statuses == {
            "First": SeoJobStatus.COMPLETED,
            "Second": SeoJobStatus.COMPLETED,
            "Third": SeoJobStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_empty_queue(self, worker):
        result = await worker.process_batch(5)
        assert result.processed == 0
        assert result.errors == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch_size", [0, -1])
    async def test_rejects_non_positive_batch(self, worker, batch_size):
        with pytest.raises(ValueError):
            await worker.process_batch(batch_size)

    def test_rejects_zero_concurrency(self, job_store, content_store, generator):
        with pytest.raises(ValueError):
            SeoBatchWorker(job_store, content_store, generator, concurrency=0)

    @pytest.mark.asyncio
    async def test_listing_failure_propagates(self, worker, job_store):
        job_store.fail_list_pending = ConnectionError("db down")
        with pytest.raises(ConnectionError):
            await worker.process_batch(5)


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_batch(
        self, worker, queue_kind, job_store, generator
    ):
        await queue_kind(TargetKind.COLLECTION, ["Good A", "Broken", "Good B"])
        generator.behaviors["Broken"] = MetadataGenerationError("invalid JSON")

        result = await worker.process_batch(10)

        assert result.succeeded == 2
        assert result.failed == 1
        assert len(result.errors) == 1
        assert "invalid JSON" in result.errors[0]
        broken = next(j for j in job_store.jobs.values() if j.context.title == "Broken")
        assert broken.status is SeoJobStatus.FAILED
        assert broken.error_message == "invalid JSON"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_recorded(
        self, worker, queue_kind, job_store, generator
    ):
        await queue_kind(TargetKind.PROFILE, ["Ada"])
        generator.behaviors["Ada"] = RuntimeError()

        result = await worker.process_batch(1)

        assert result.failed == 1
        [job] = job_store.jobs.values()
        # Empty messages fall back to the exception type
        assert job.error_message == "RuntimeError"

    @pytest.mark.asyncio
    async def test_error_samples_capped_at_five(
        self, worker, queue_kind, generator
    ):
        titles = [f"Bad {i}" for i in range(7)]
        await queue_kind(TargetKind.ITEM, titles)
        for title in titles:
            generator.behaviors[title] = MetadataGenerationError(f"{title} failed")

        result = await worker.process_batch(10)

        assert result.failed == 7
        assert len(result.errors) == 5

    @pytest.mark.asyncio
    async def test_mark_completed_failure_marks_job_failed(
        self, worker, queue_kind, job_store
    ):
        await queue_kind(TargetKind.COLLECTION, ["Show"])
        job_store.fail_mark_completed = ConnectionError("lost connection")

        result = await worker.process_batch(1)

        assert result.failed == 1
        [job] = job_store.jobs.values()
        assert job.status is SeoJobStatus.FAILED

    @pytest.mark.asyncio
    async def test_claim_error_is_isolated(self, worker, queue_kind, job_store):
        await queue_kind(TargetKind.ITEM, ["A", "B", "C"])
        flaky = next(j for j in job_store.jobs.values() if j.context.title == "B")
        claim = job_store.claim

        async def flaky_claim(job_id):
            if job_id == flaky.id:
                raise ConnectionError("connection reset")
            return await claim(job_id)

        job_store.claim = flaky_claim

        result = await worker.process_batch(3)

        assert result.succeeded == 2
        assert result.skipped == 1
        assert result.failed == 0
        assert result.errors == [f"Job {flaky.id}: claim failed: connection reset"]
        assert job_store.jobs[flaky.id].status is SeoJobStatus.PENDING


class TestTimeout:
    @pytest.mark.asyncio
    async def test_slow_generator_fails_job(self, job_store, content_store, generator, queue_kind):
        worker = SeoBatchWorker(
            job_store, content_store, generator, generator_timeout_s=0.05
        )
        generator.delay = 1.0
        await queue_kind(TargetKind.COLLECTION, ["Slow"])

        result = await worker.process_batch(1)

        assert result.failed == 1
        [job] = job_store.jobs.values()
        assert job.status is SeoJobStatus.FAILED
        assert "timed out" in job.error_message

    @pytest.mark.asyncio
    async def test_timeout_error_type(self, job_store, content_store, generator, make_context):
        worker = SeoBatchWorker(
            job_store, content_store, generator, generator_timeout_s=0.01
        )
        generator.delay = 0.5
        with pytest.raises(GeneratorTimeoutError):
            await worker._generate(make_context())


class TestClaimExclusivity:
    @pytest.mark.asyncio
    async def test_concurrent_batches_never_double_process(
        self, job_store, content_store, generator, queue_kind
    ):
        await queue_kind(TargetKind.ITEM, [f"Ep {i}" for i in range(6)])
        worker_a = SeoBatchWorker(job_store, content_store, generator, concurrency=2)
        worker_b = SeoBatchWorker(job_store, content_store, generator, concurrency=2)

        result_a, result_b = await asyncio.gather(
            worker_a.process_batch(6), worker_b.process_batch(6)
        )

        assert result_a.succeeded + result_b.succeeded == 6
        assert result_a.skipped + result_b.skipped == 6
        assert len(generator.calls) == 6
        assert all(j.status is SeoJobStatus.COMPLETED for j in job_store.jobs.values())

    @pytest.mark.asyncio
    async def test_lost_claim_is_skipped_silently(
        self, worker, queue_kind, job_store, generator
    ):
        await queue_kind(TargetKind.COLLECTION, ["Taken"])
        [job] = job_store.jobs.values()
        pending = await job_store.list_pending(1)
        # Another worker claims between listing and claiming
        await job_store.claim(job.id)
        job_store.list_pending = _returning(pending)

        result = await worker.process_batch(1)

        assert result.skipped == 1
        assert result.failed == 0
        assert result.errors == []
        assert generator.calls == []


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_in_flight_bounded(self, job_store, content_store, generator, queue_kind):
        worker = SeoBatchWorker(job_store, content_store, generator, concurrency=2)
        generator.delay = 0.02
        await queue_kind(TargetKind.ITEM, [f"Ep {i}" for i in range(6)])

        result = await worker.process_batch(6)

        assert result.succeeded == 6
        assert generator.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_stop_event_prevents_new_claims(
        self, job_store, content_store, generator, queue_kind
    ):
        worker = SeoBatchWorker(job_store, content_store, generator, concurrency=1)
        generator.release = asyncio.Event()
        await queue_kind(TargetKind.ITEM, ["Ep 1", "Ep 2", "Ep 3"])
        stop = asyncio.Event()

        task = asyncio.create_task(worker.process_batch(3, stop_event=stop))
        await generator.started.wait()
        stop.set()
        generator.release.set()
        result = await task

        # The in-flight job finishes; the rest stay pending
        assert result.succeeded == 1
        assert len(job_store.claim_attempts) == 1
        pending = [j for j in job_store.jobs.values() if j.status is SeoJobStatus.PENDING]
        assert len(pending) == 2


class TestSlugHandling:
    @pytest.mark.asyncio
    async def test_collision_keeps_slug_and_completes(
        self, worker, queue_kind, job_store, content_store
    ):
        content_store.add(TargetKind.COLLECTION, "Existing", slug="daily-byte")
        [target] = await queue_kind(TargetKind.COLLECTION, ["Daily Byte"])

        result = await worker.process_batch(5)

        assert result.succeeded == 1
        row = content_store.row(TargetKind.COLLECTION, target)
        assert row["slug"] is None
        assert row["seo_metadata"] is not None
        assert job_store.find(TargetKind.COLLECTION, target).status is SeoJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_same_slug_in_one_batch_is_assigned_once(
        self, worker, queue_kind, content_store, generator
    ):
        targets = await queue_kind(TargetKind.ITEM, ["Episode 1 (a)", "Episode 1 (b)"])
        for title in ("Episode 1 (a)", "Episode 1 (b)"):
            generator.behaviors[title] = SeoMetadata(
                slug="episode-1", meta_title="Episode 1", meta_description="d"
            )
        lookup = content_store.slug_taken

        async def slow_lookup(kind, slug, exclude_id):
            taken = await lookup(kind, slug, exclude_id)
            # A database round trip yields to other jobs here
            await asyncio.sleep(0)
            return taken

        content_store.slug_taken = slow_lookup

        result = await worker.process_batch(2)

        assert result.succeeded == 2
        slugs = [content_store.row(TargetKind.ITEM, t)["slug"] for t in targets]
        assert slugs.count("episode-1") == 1
        assert None in slugs

    @pytest.mark.asyncio
    async def test_generated_slug_is_normalized(
        self, worker, queue_kind, content_store, generator
    ):
        [target] = await queue_kind(TargetKind.PROFILE, ["Ada"])
        generator.behaviors["Ada"] = SeoMetadata(
            slug="Ada Lovelace!!", meta_title="Ada", meta_description="Mathematician"
        )

        await worker.process_batch(1)

        assert content_store.row(TargetKind.PROFILE, target)["slug"] == "ada-lovelace"

    @pytest.mark.asyncio
    async def test_no_slug_leaves_record_slug(
        self, worker, queue_kind, content_store, generator
    ):
        [target] = await queue_kind(TargetKind.ITEM, ["Ep"])
        content_store.row(TargetKind.ITEM, target)["slug"] = "ep-1"
        generator.behaviors["Ep"] = SeoMetadata(meta_title="Ep", meta_description="d")

        await worker.process_batch(1)

        assert content_store.row(TargetKind.ITEM, target)["slug"] == "ep-1"


class TestDeletedTarget:
    @pytest.mark.asyncio
    async def test_deleted_record_fails_job(self, worker, queue_kind, job_store, content_store):
        [target] = await queue_kind(TargetKind.COLLECTION, ["Gone"])
        content_store.delete(TargetKind.COLLECTION, target)

        result = await worker.process_batch(1)

        assert result.failed == 1
        job = job_store.find(TargetKind.COLLECTION, target)
        assert job.status is SeoJobStatus.FAILED
        assert job.error_message == f"target not found: collection {target}"


def _returning(value):
    async def _fn(limit):
        return value

    return _fn
