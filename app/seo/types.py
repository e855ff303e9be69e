"""SEO job queue type definitions."""

from enum import Enum


class TargetKind(str, Enum):
    """Content kinds that can carry SEO metadata."""

    COLLECTION = "collection"
    ITEM = "item"
    PROFILE = "profile"


class SeoJobStatus(str, Enum):
    """SEO job lifecycle statuses."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Active jobs block a new job for the same target."""
        return self in (
            SeoJobStatus.PENDING,
            SeoJobStatus.PROCESSING,
            SeoJobStatus.COMPLETED,
        )


# Transitions a job row may take. processing -> pending is the stale sweep,
# completed -> pending is the explicit regenerate path.
ALLOWED_TRANSITIONS: dict[SeoJobStatus, frozenset[SeoJobStatus]] = {
    SeoJobStatus.PENDING: frozenset({SeoJobStatus.PROCESSING}),
    SeoJobStatus.PROCESSING: frozenset(
        {SeoJobStatus.COMPLETED, SeoJobStatus.FAILED, SeoJobStatus.PENDING}
    ),
    SeoJobStatus.COMPLETED: frozenset({SeoJobStatus.PENDING}),
    SeoJobStatus.FAILED: frozenset({SeoJobStatus.PENDING}),
}


def can_transition(from_status: SeoJobStatus, to_status: SeoJobStatus) -> bool:
    """Check whether a status change is allowed."""
    return to_status in ALLOWED_TRANSITIONS[from_status]
