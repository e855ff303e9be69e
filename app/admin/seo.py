"""SEO queue admin endpoints (enqueue, process, requeue, stats, jobs)."""

import asyncio
from typing import Any, Literal, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.admin.utils import PaginationDefaults, json_serializable, require_db_pool
from app.config import get_settings
from app.deps.security import require_admin_token
from app.seo.errors import (
    GeneratorNotConfiguredError,
    JobInProgressError,
    MetadataGenerationError,
    SeoQueueError,
    TargetNotFoundError,
)
from app.seo.models import SeoJob
from app.seo.poller import get_poller
from app.seo.service import SeoJobService
from app.seo.types import SeoJobStatus, TargetKind

router = APIRouter(prefix="/admin/seo", tags=["admin"])
logger = structlog.get_logger(__name__)

# Global connection pool and service (set during app startup)
_db_pool = None
_seo_service: Optional[SeoJobService] = None


def set_db_pool(pool):
    """Set the database pool for SEO admin routes."""
    global _db_pool
    _db_pool = pool


def set_seo_service(service: Optional[SeoJobService]):
    """Set the SEO job service (built with the metadata generator at startup)."""
    global _seo_service
    _seo_service = service


def _get_service() -> SeoJobService:
    """Get the SEO service, raising 503 if the database is not available."""
    if _seo_service is not None:
        return _seo_service
    pool = require_db_pool(_db_pool, "Database")
    return SeoJobService.from_pool(pool, get_settings())


def _to_http_error(e: Exception) -> HTTPException:
    """Map queue errors to HTTP status codes."""
    if isinstance(e, TargetNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, JobInProgressError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, GeneratorNotConfiguredError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        )
    if isinstance(e, MetadataGenerationError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
    )


# =============================================================================
# Stats & Job Listing
# =============================================================================


@router.get("/stats")
async def get_stats(_: bool = Depends(require_admin_token)):
    """Job counts by status and content totals for every kind."""
    service = _get_service()
    stats = await service.get_stats()
    return stats.to_dict()


@router.get("/jobs")
async def list_jobs(
    job_status: Optional[SeoJobStatus] = Query(None, alias="status"),
    kind: Optional[TargetKind] = Query(None),
    limit: int = Query(
        PaginationDefaults.DEFAULT_LIMIT, ge=1, le=PaginationDefaults.MAX_LIMIT
    ),
    offset: int = Query(0, ge=0),
    _: bool = Depends(require_admin_token),
):
    """
    List SEO jobs, newest first.

    Each job carries its target's current title and whether the record
    has seo_metadata, or `target: null` if the record is gone.
    """
    service = _get_service()
    jobs, total = await service.list_jobs(
        status=job_status, kind=kind, limit=limit, offset=offset
    )
    targets = await asyncio.gather(
        *[service.get_target_summary(j.target_kind, j.target_id) for j in jobs]
    )

    return {
        "jobs": [_job_to_dict(job, target) for job, target in zip(jobs, targets)],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/jobs/{job_id}")
async def get_job(job_id: UUID, _: bool = Depends(require_admin_token)):
    service = _get_service()
    job = await service.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"job not found: {job_id}"
        )
    target = await service.get_target_summary(job.target_kind, job.target_id)
    return _job_to_dict(job, target)


# =============================================================================
# Enqueueing
# =============================================================================


@router.post("/enqueue/{kind}")
async def enqueue_kind(
    kind: TargetKind,
    mode: Literal["approved", "missing"] = Query(
        "missing", description="approved: all eligible records; missing: records with no job"
    ),
    _: bool = Depends(require_admin_token),
):
    """Bulk enqueue for one kind. Repeat calls insert nothing new."""
    service = _get_service()
    if mode == "approved":
        inserted = await service.enqueue_for_approved(kind)
        return {"kind": kind.value, "inserted": inserted}

    result = await service.enqueue_missing(kind)
    return result.to_dict()


@router.post("/regenerate-existing/{kind}")
async def regenerate_existing(kind: TargetKind, _: bool = Depends(require_admin_token)):
    """Re-queue every record of a kind that already has metadata."""
    service = _get_service()
    queued = await service.regenerate_existing(kind)
    return {"kind": kind.value, "queued": queued}


@router.post("/targets/{kind}/{target_id}/enqueue")
async def enqueue_target(
    kind: TargetKind, target_id: UUID, _: bool = Depends(require_admin_token)
):
    service = _get_service()
    try:
        inserted = await service.enqueue_one(kind, target_id)
    except SeoQueueError as e:
        raise _to_http_error(e)
    return {"kind": kind.value, "target_id": str(target_id), "inserted": inserted}


@router.post("/targets/{kind}/{target_id}/regenerate")
async def regenerate_target(
    kind: TargetKind, target_id: UUID, _: bool = Depends(require_admin_token)
):
    """Reset the target's job to pending (409 while it is processing)."""
    service = _get_service()
    try:
        job = await service.regenerate(kind, target_id)
    except SeoQueueError as e:
        raise _to_http_error(e)
    return _job_to_dict(job)


@router.post("/targets/{kind}/{target_id}/generate")
async def generate_target_now(
    kind: TargetKind, target_id: UUID, _: bool = Depends(require_admin_token)
):
    """Generate and write metadata immediately, bypassing the queue."""
    service = _get_service()
    try:
        metadata = await service.generate_now(kind, target_id)
    except SeoQueueError as e:
        raise _to_http_error(e)
    return {
        "kind": kind.value,
        "target_id": str(target_id),
        "seo_metadata": metadata.to_payload(),
    }


# =============================================================================
# Processing & Recovery
# =============================================================================


@router.post("/process")
async def process_batch(
    batch_size: Optional[int] = Query(None, ge=1, le=100),
    _: bool = Depends(require_admin_token),
):
    """Process one batch of pending jobs synchronously."""
    service = _get_service()
    try:
        result = await service.process_batch(batch_size)
    except (SeoQueueError, ValueError) as e:
        raise _to_http_error(e)
    return result.to_dict()


@router.post("/requeue-failed")
async def requeue_failed(_: bool = Depends(require_admin_token)):
    service = _get_service()
    count = await service.requeue_failed()
    return {"requeued": count}


@router.post("/requeue-stale")
async def requeue_stale(
    older_than_minutes: Optional[int] = Query(None, ge=1),
    _: bool = Depends(require_admin_token),
):
    """Reset processing jobs stuck longer than the threshold."""
    service = _get_service()
    count = await service.requeue_stale(older_than_minutes)
    return {"requeued": count}


@router.get("/poller")
async def poller_status(_: bool = Depends(require_admin_token)):
    poller = get_poller()
    if poller is None:
        return {"running": False, "last_run_at": None, "last_result": None}
    return json_serializable(
        {
            "running": poller.is_running,
            "last_run_at": poller.last_run_at,
            "last_result": poller.last_result,
        }
    )


# =============================================================================
# Serialization Helpers
# =============================================================================


def _job_to_dict(job: SeoJob, target: Optional[dict] = None) -> dict[str, Any]:
    data = job.to_dict()
    data["target"] = json_serializable(target)
    return data
