"""Per-kind dispatch table.

Everything that differs between podcasts, episodes and people lives in one
KindTable: the table, the projection, which rows are eligible for bulk
enqueueing, and how a content row becomes a GenerationContext. Adding a new
content kind means adding one entry to KIND_TABLES.
"""

from dataclasses import dataclass
from typing import Any, Callable

from app.seo.models import ContentRecord, ContentType, GenerationContext
from app.seo.types import TargetKind

ContextBuilder = Callable[[ContentRecord], str]


@dataclass(frozen=True)
class KindTable:
    """Storage and context rules for one content kind."""

    kind: TargetKind
    table: str
    content_type: ContentType
    # SELECT list over the content table aliased as `t`; must yield
    # id, title, description, slug, has_seo_metadata plus extra columns
    projection: str
    related_info: ContextBuilder
    # Extra columns passed to the generator as additional context
    additional_fields: tuple[str, ...] = ()
    joins: str = ""
    eligible_filter: str = "TRUE"
    slug_column: str = "slug"

    def select_sql(self, where: str = "TRUE") -> str:
        """Projection query with an optional extra predicate."""
        return (
            f"SELECT {self.projection} FROM {self.table} t {self.joins} "
            f"WHERE {where}"
        )

    def update_sql(self) -> str:
        """Write-back of seo_metadata and (optionally) the slug."""
        return f"""
            UPDATE {self.table} SET
                seo_metadata = $2::jsonb,
                {self.slug_column} = COALESCE($3, {self.slug_column})
            WHERE id = $1
        """

    def slug_taken_sql(self) -> str:
        return (
            f"SELECT EXISTS (SELECT 1 FROM {self.table} "
            f"WHERE {self.slug_column} = $1 AND id <> $2)"
        )

    def build_context(
        self, record: ContentRecord, enriched: bool = False
    ) -> GenerationContext:
        """Snapshot a content record into a generation context.

        Bulk enqueue paths use the plain context; single-target paths ask
        for the enriched one with the kind's extra columns attached.
        """
        additional = None
        if enriched:
            additional = {
                name: record.fields[name]
                for name in self.additional_fields
                if record.fields.get(name) not in (None, "", [])
            }
        return GenerationContext(
            title=record.title,
            description=record.description or "",
            content_type=self.content_type,
            related_info=self.related_info(record),
            additional_context=additional or None,
        )


def _collection_related(record: ContentRecord) -> str:
    return ", ".join(record.fields.get("categories") or [])


def _item_related(record: ContentRecord) -> str:
    return f"From podcast: {record.fields.get('podcast_title') or 'Unknown'}"


def _profile_related(record: ContentRecord) -> str:
    return record.fields.get("location") or ""


_BASE_COLUMNS = "t.id, {title} AS title, COALESCE({description}, '') AS description, t.slug, t.seo_metadata IS NOT NULL AS has_seo_metadata"  # noqa: E501


KIND_TABLES: dict[TargetKind, KindTable] = {
    TargetKind.COLLECTION: KindTable(
        kind=TargetKind.COLLECTION,
        table="podcasts",
        content_type="podcast",
        projection=_BASE_COLUMNS.format(title="t.title", description="t.description")
        + ", t.categories, t.tags, t.language, t.average_rating, t.total_views,"
        " t.total_likes, t.total_episodes, t.average_duration,"
        " t.first_episode_date, t.last_episode_date, t.official_website",
        related_info=_collection_related,
        additional_fields=(
            "categories",
            "tags",
            "language",
            "average_rating",
            "total_views",
            "total_likes",
            "total_episodes",
            "average_duration",
            "first_episode_date",
            "last_episode_date",
            "official_website",
        ),
        eligible_filter="t.submission_status = 'approved'",
    ),
    TargetKind.ITEM: KindTable(
        kind=TargetKind.ITEM,
        table="episodes",
        content_type="episode",
        projection=_BASE_COLUMNS.format(title="t.title", description="t.description")
        + ", p.title AS podcast_title, t.tags, t.episode_number, t.season_number,"
        " t.duration, t.published_at, t.average_rating,"
        " t.views AS total_views, t.likes AS total_likes",
        joins="LEFT JOIN podcasts p ON p.id = t.podcast_id",
        related_info=_item_related,
        additional_fields=(
            "podcast_title",
            "tags",
            "episode_number",
            "season_number",
            "duration",
            "published_at",
            "average_rating",
            "total_views",
            "total_likes",
        ),
    ),
    TargetKind.PROFILE: KindTable(
        kind=TargetKind.PROFILE,
        table="people",
        content_type="person",
        projection=_BASE_COLUMNS.format(title="t.full_name", description="t.bio")
        + ", t.location, t.birth_date, t.website_url, t.total_appearances,"
        " t.is_verified, t.average_rating",
        related_info=_profile_related,
        additional_fields=(
            "location",
            "birth_date",
            "website_url",
            "total_appearances",
            "is_verified",
            "average_rating",
        ),
    ),
}


def get_kind_table(kind: TargetKind) -> KindTable:
    """Look up the dispatch entry for a kind."""
    return KIND_TABLES[kind]


def record_from_row(kind: TargetKind, row: Any) -> ContentRecord:
    """Convert a projection row into a ContentRecord."""
    data = dict(row)
    return ContentRecord(
        id=data.pop("id"),
        kind=kind,
        title=data.pop("title") or "",
        description=data.pop("description") or "",
        slug=data.pop("slug", None),
        has_seo_metadata=bool(data.pop("has_seo_metadata", False)),
        fields=data,
    )
