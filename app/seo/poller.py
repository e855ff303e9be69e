"""SEO queue polling service.

Drains the queue on a schedule inside the API process: every tick it
recovers stale processing jobs, then processes one batch.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog
from prometheus_client import Counter, Gauge

from app.config import Settings
from app.seo.models import BatchResult
from app.seo.service import SeoJobService

logger = structlog.get_logger(__name__)


# =============================================================================
# Prometheus Metrics
# =============================================================================

SEO_POLL_TICKS_TOTAL = Counter(
    "seo_poll_ticks_total",
    "Total SEO poller ticks",
    ["status"],  # success, partial, idle, failure
)
SEO_POLL_LAST_RUN_TIMESTAMP = Gauge(
    "seo_poll_last_run_timestamp",
    "Timestamp of last SEO poller tick (unix seconds)",
)
SEO_POLL_ENABLED = Gauge(
    "seo_poll_enabled",
    "Whether the SEO poller is running (1=running, 0=stopped)",
)


class SeoQueuePoller:
    """
    Background task that processes the SEO queue.

    - Runs every tick_seconds until stopped
    - Requeues stale processing jobs before each batch
    - Stop is graceful: no new jobs are claimed once stop is requested,
      in-flight jobs are given `timeout` seconds before the task is cancelled
    """

    def __init__(self, service: SeoJobService, settings: Settings):
        self._service = service
        self._settings = settings

        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._running = False

        self._last_run_at: Optional[datetime] = None
        self._last_result: Optional[BatchResult] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_run_at(self) -> Optional[datetime]:
        return self._last_run_at

    @property
    def last_result(self) -> Optional[BatchResult]:
        return self._last_result

    async def start(self) -> None:
        """Start the polling background task."""
        if self._running:
            logger.warning("SEO poller already running")
            return

        if not self._settings.seo_poll_enabled:
            logger.info("SEO queue polling disabled (SEO_POLL_ENABLED=false)")
            SEO_POLL_ENABLED.set(0)
            return

        if not self._service.can_process:
            logger.warning("SEO poller not started: no metadata generator configured")
            SEO_POLL_ENABLED.set(0)
            return

        logger.info(
            "Starting SEO queue poller",
            tick_seconds=self._settings.seo_poll_tick_seconds,
            batch_size=self._settings.seo_batch_size,
            concurrency=self._settings.seo_worker_concurrency,
        )

        SEO_POLL_ENABLED.set(1)
        self._stop_event.clear()
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self, timeout: float = 30.0) -> None:
        """
        Stop the polling task gracefully.

        Args:
            timeout: Max seconds to wait for in-flight jobs
        """
        if not self._running:
            return

        logger.info("Stopping SEO queue poller")
        self._stop_event.set()

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("SEO poller stop timeout, cancelling task")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._running = False
        SEO_POLL_ENABLED.set(0)
        logger.info("SEO queue poller stopped")

    async def run_once(self) -> BatchResult:
        """Run a single tick (for manual triggering)."""
        return await self._do_tick()

    async def _poll_loop(self) -> None:
        tick_seconds = self._settings.seo_poll_tick_seconds

        while not self._stop_event.is_set():
            try:
                result = await self._do_tick()
                self._last_result = result
                self._last_run_at = datetime.now(timezone.utc)
                SEO_POLL_LAST_RUN_TIMESTAMP.set(self._last_run_at.timestamp())

                if result.processed == 0:
                    status = "idle"
                elif result.failed:
                    status = "partial"
                else:
                    status = "success"
                SEO_POLL_TICKS_TOTAL.labels(status=status).inc()

            except Exception as e:
                logger.exception("SEO poll tick failed", error=str(e))
                SEO_POLL_TICKS_TOTAL.labels(status="failure").inc()

            # Wait for next tick (interruptible)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=tick_seconds)
                break
            except asyncio.TimeoutError:
                pass

    async def _do_tick(self) -> BatchResult:
        requeued = await self._service.requeue_stale()
        result = await self._service.process_batch(
            self._settings.seo_batch_size, stop_event=self._stop_event
        )
        if requeued or result.processed:
            logger.info(
                "SEO poll tick complete",
                stale_requeued=requeued,
                succeeded=result.succeeded,
                failed=result.failed,
                skipped=result.skipped,
            )
        return result


# =============================================================================
# Module-level singleton
# =============================================================================

_poller: Optional[SeoQueuePoller] = None


def get_poller() -> Optional[SeoQueuePoller]:
    """Get the global poller instance."""
    return _poller


def set_poller(poller: Optional[SeoQueuePoller]) -> None:
    """Set the global poller instance."""
    global _poller
    _poller = poller
