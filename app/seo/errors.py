"""SEO job queue exceptions."""

from typing import Optional
from uuid import UUID

from app.seo.types import TargetKind


class SeoQueueError(Exception):
    """Base error for the SEO job queue."""


class TargetNotFoundError(SeoQueueError):
    """Raised when a job's content record no longer exists."""

    def __init__(self, kind: TargetKind, target_id: UUID):
        self.kind = kind
        self.target_id = target_id
        super().__init__(f"target not found: {kind.value} {target_id}")


class JobInProgressError(SeoQueueError):
    """Raised when regenerating a target whose job is being processed."""

    def __init__(self, kind: TargetKind, target_id: UUID):
        self.kind = kind
        self.target_id = target_id
        super().__init__(f"job for {kind.value} {target_id} is processing")


class GeneratorNotConfiguredError(SeoQueueError):
    """Raised when processing is requested but no LLM provider is set up."""

    def __init__(self):
        super().__init__(
            "metadata generator not configured (set ANTHROPIC_API_KEY or "
            "OPENROUTER_API_KEY)"
        )


class MetadataGenerationError(SeoQueueError):
    """Generator could not produce valid metadata."""

    def __init__(self, message: str, model: Optional[str] = None):
        self.model = model
        super().__init__(message)


class GeneratorTimeoutError(MetadataGenerationError):
    """Generator call exceeded the configured timeout."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"metadata generation timed out after {timeout_seconds:g}s")
