"""SEO job queue data models."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.seo.types import SeoJobStatus, TargetKind

ContentType = Literal["podcast", "episode", "person"]

# Error samples returned to batch callers
MAX_ERROR_SAMPLES = 5


class GenerationContext(BaseModel):
    """Input snapshot captured when a job is enqueued.

    Stored verbatim on the job row so a job always generates against the
    content it was queued with, even if the record changes later.
    """

    title: str
    description: str = ""
    content_type: ContentType
    related_info: str = ""
    additional_context: Optional[dict[str, Any]] = None

    @classmethod
    def from_json(cls, data: Any) -> "GenerationContext":
        """Build from a stored JSONB value (dict or JSON text)."""
        if isinstance(data, str):
            return cls.model_validate_json(data)
        return cls.model_validate(data)


class FAQ(BaseModel):
    question: str
    answer: str


class SeoMetadata(BaseModel):
    """Metadata returned by the generator.

    Structured blocks (schema markup, social tags, ...) are optional and
    kept as loose dicts; unknown top-level fields are preserved.
    """

    model_config = ConfigDict(extra="allow")

    slug: Optional[str] = None
    meta_title: str
    meta_description: str
    keywords: list[str] = Field(default_factory=list)
    faqs: list[FAQ] = Field(default_factory=list)

    schema_markup: Optional[dict[str, Any]] = None
    social_media: Optional[dict[str, Any]] = None
    content_enhancement: Optional[dict[str, Any]] = None
    technical_seo: Optional[dict[str, Any]] = None
    local_seo: Optional[dict[str, Any]] = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the content record's seo_metadata column."""
        return self.model_dump(mode="json", exclude_none=True)


@dataclass
class SeoJob:
    """A metadata generation job for one content target."""

    id: UUID
    target_kind: TargetKind
    target_id: UUID
    status: SeoJobStatus
    context: GenerationContext
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "target_kind": self.target_kind.value,
            "target_id": str(self.target_id),
            "status": self.status.value,
            "context": self.context.model_dump(mode="json"),
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class ContentRecord:
    """Read projection of a content row.

    `fields` holds the kind-specific columns the context builders need.
    """

    id: UUID
    kind: TargetKind
    title: str
    description: str = ""
    slug: Optional[str] = None
    has_seo_metadata: bool = False
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class NewJob:
    """A job row waiting to be inserted."""

    target_kind: TargetKind
    target_id: UUID
    context: GenerationContext


@dataclass
class EnqueueResult:
    """Outcome of an enqueue pass."""

    kind: TargetKind
    inserted: int
    total: int

    @property
    def message(self) -> str:
        return (
            f"Queued {self.inserted} {self.kind.value} records for SEO generation "
            f"({self.total} total)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "inserted": self.inserted,
            "total": self.total,
            "message": self.message,
        }


@dataclass
class BatchResult:
    """Aggregate outcome of one process_batch call."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def record_error(self, job_id: UUID, message: str) -> None:
        """Keep only the first few error messages."""
        if len(self.errors) < MAX_ERROR_SAMPLES:
            self.errors.append(f"Job {job_id}: {message}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["processed"] = self.processed
        return data


@dataclass
class KindStats:
    """Job counts by status for one content kind."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total_content: int = 0

    @property
    def total_jobs(self) -> int:
        return self.pending + self.processing + self.completed + self.failed

    def add(self, status: SeoJobStatus, count: int) -> None:
        setattr(self, status.value, getattr(self, status.value) + count)

    def to_dict(self) -> dict[str, int]:
        data = asdict(self)
        data["total_jobs"] = self.total_jobs
        return data


@dataclass
class QueueStats:
    """Point-in-time rollup across all kinds."""

    by_kind: dict[TargetKind, KindStats]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": {kind.value: s.to_dict() for kind, s in self.by_kind.items()},
            "generated_at": self.generated_at.isoformat(),
        }
