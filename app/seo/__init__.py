"""
SEO metadata job queue.

Queues one generation job per content record (podcast, episode, person),
processes pending jobs in bounded-concurrency batches against an LLM
generator, and writes the resulting metadata back to the record.

Example usage:
    from app.seo import SeoJobService, TargetKind

    service = SeoJobService.from_pool(pool, settings, generator)
    await service.enqueue_missing(TargetKind.COLLECTION)
    result = await service.process_batch(10)
"""

from app.seo.errors import (
    GeneratorNotConfiguredError,
    GeneratorTimeoutError,
    JobInProgressError,
    MetadataGenerationError,
    SeoQueueError,
    TargetNotFoundError,
)
from app.seo.models import (
    BatchResult,
    ContentRecord,
    EnqueueResult,
    GenerationContext,
    KindStats,
    QueueStats,
    SeoJob,
    SeoMetadata,
)
from app.seo.service import SeoJobService
from app.seo.types import SeoJobStatus, TargetKind

__all__ = [
    # Service
    "SeoJobService",
    # Types
    "TargetKind",
    "SeoJobStatus",
    # Models
    "BatchResult",
    "ContentRecord",
    "EnqueueResult",
    "GenerationContext",
    "KindStats",
    "QueueStats",
    "SeoJob",
    "SeoMetadata",
    # Errors
    "SeoQueueError",
    "TargetNotFoundError",
    "JobInProgressError",
    "MetadataGenerationError",
    "GeneratorTimeoutError",
    "GeneratorNotConfiguredError",
]
