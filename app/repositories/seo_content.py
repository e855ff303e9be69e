"""Repository for the content tables the SEO queue reads and writes."""

import json
from typing import Any, Optional
from uuid import UUID

import structlog

from app.seo.kinds import get_kind_table, record_from_row
from app.seo.models import ContentRecord
from app.seo.types import TargetKind

logger = structlog.get_logger(__name__)


class SeoContentRepository:
    """Projection reads and seo_metadata/slug write-back per content kind."""

    def __init__(self, pool):
        self._pool = pool

    async def get_record(
        self, kind: TargetKind, target_id: UUID
    ) -> Optional[ContentRecord]:
        kt = get_kind_table(kind)
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(kt.select_sql("t.id = $1"), target_id)
        return record_from_row(kind, row) if row else None

    async def list_eligible(self, kind: TargetKind) -> list[ContentRecord]:
        kt = get_kind_table(kind)
        return await self._fetch_records(kind, kt.select_sql(kt.eligible_filter))

    async def list_without_jobs(self, kind: TargetKind) -> list[ContentRecord]:
        kt = get_kind_table(kind)
        query = kt.select_sql(
            "NOT EXISTS (SELECT 1 FROM seo_jobs j "
            "WHERE j.target_id = t.id AND j.target_kind = $1)"
        )
        return await self._fetch_records(kind, query, kind.value)

    async def list_with_metadata(self, kind: TargetKind) -> list[ContentRecord]:
        kt = get_kind_table(kind)
        query = kt.select_sql(
            f"({kt.eligible_filter}) AND t.seo_metadata IS NOT NULL"
        )
        return await self._fetch_records(kind, query)

    async def count(self, kind: TargetKind) -> int:
        kt = get_kind_table(kind)
        async with self._pool.acquire() as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM {kt.table}")
        return total or 0

    async def write_metadata(
        self,
        kind: TargetKind,
        target_id: UUID,
        metadata: dict[str, Any],
        slug: Optional[str],
    ) -> bool:
        kt = get_kind_table(kind)
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                kt.update_sql(), target_id, json.dumps(metadata), slug
            )
        updated = result == "UPDATE 1"
        if updated and slug:
            logger.info(
                "seo_slug_updated",
                target_kind=kind.value,
                target_id=str(target_id),
                slug=slug,
            )
        return updated

    async def slug_taken(
        self, kind: TargetKind, slug: str, exclude_id: UUID
    ) -> bool:
        kt = get_kind_table(kind)
        async with self._pool.acquire() as conn:
            taken = await conn.fetchval(kt.slug_taken_sql(), slug, exclude_id)
        return bool(taken)

    async def _fetch_records(
        self, kind: TargetKind, query: str, *params: Any
    ) -> list[ContentRecord]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [record_from_row(kind, row) for row in rows]
