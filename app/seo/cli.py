#!/usr/bin/env python
"""
CLI for SEO queue operations.

Usage:
    python -m app.seo.cli enqueue --kind <kind> (--id <uuid> | --all-approved)
    python -m app.seo.cli enqueue-missing [--kind <kind>]
    python -m app.seo.cli regenerate --kind <kind> (--id <uuid> | --existing)
    python -m app.seo.cli process [--batch-size N] [--loop]
    python -m app.seo.cli requeue
    python -m app.seo.cli sweep [--older-than-minutes N]
    python -m app.seo.cli stats [--json]

Examples:
    # Queue every podcast that has no job yet
    python -m app.seo.cli enqueue-missing --kind collection

    # Queue a single episode
    python -m app.seo.cli enqueue --kind item --id 5f0c...

    # Drain the queue in batches of 20
    python -m app.seo.cli process --batch-size 20 --loop

    # Put failed jobs back in the queue
    python -m app.seo.cli requeue
"""

import argparse
import asyncio
import json
import sys
from typing import Optional
from uuid import UUID

import structlog

# Configure logging for CLI
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

logger = structlog.get_logger(__name__)

KIND_CHOICES = ["collection", "item", "profile"]


async def _build_service(with_generator: bool = False):
    """Open a pool and build the service. Caller closes the pool."""
    from app.config import get_settings
    from app.core.lifespan import create_db_pool
    from app.seo.service import SeoJobService

    settings = get_settings()
    pool = await create_db_pool(settings)

    generator = None
    if with_generator:
        from app.seo.generator import LLMMetadataGenerator
        from app.services.llm_factory import get_llm

        llm = get_llm()
        if llm is not None:
            generator = LLMMetadataGenerator(
                llm,
                models=settings.seo_models,
                max_tokens=settings.seo_max_tokens,
                fallback_enabled=settings.seo_fallback_enabled,
            )

    return pool, SeoJobService.from_pool(pool, settings, generator)


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(value)
    except ValueError:
        logger.error("Invalid target ID", target_id=value)
        return None


async def cmd_enqueue(args: argparse.Namespace) -> int:
    """Enqueue one target, or every approved record of a kind."""
    from app.seo.errors import TargetNotFoundError
    from app.seo.types import TargetKind

    kind = TargetKind(args.kind)
    if not args.id and not args.all_approved:
        logger.error("Provide --id or --all-approved")
        return 1

    target_id = None
    if args.id:
        target_id = _parse_uuid(args.id)
        if target_id is None:
            return 1

    pool, service = await _build_service()
    try:
        if target_id is not None:
            try:
                inserted = await service.enqueue_one(kind, target_id)
            except TargetNotFoundError as e:
                logger.error("Target not found", error=str(e))
                return 1
            print("Queued" if inserted else "Already queued")
        else:
            inserted = await service.enqueue_for_approved(kind)
            print(f"Queued {inserted} {kind.value} records")
    finally:
        await pool.close()
    return 0


async def cmd_enqueue_missing(args: argparse.Namespace) -> int:
    """Enqueue records with no job, for one kind or all kinds."""
    from app.seo.types import TargetKind

    kinds = [TargetKind(args.kind)] if args.kind else list(TargetKind)

    pool, service = await _build_service()
    try:
        for kind in kinds:
            result = await service.enqueue_missing(kind)
            print(result.message)
    finally:
        await pool.close()
    return 0


async def cmd_regenerate(args: argparse.Namespace) -> int:
    """Re-queue one target, or every record of a kind with metadata."""
    from app.seo.errors import JobInProgressError, TargetNotFoundError
    from app.seo.types import TargetKind

    kind = TargetKind(args.kind)
    if not args.id and not args.existing:
        logger.error("Provide --id or --existing")
        return 1

    target_id = None
    if args.id:
        target_id = _parse_uuid(args.id)
        if target_id is None:
            return 1

    pool, service = await _build_service()
    try:
        if target_id is not None:
            try:
                job = await service.regenerate(kind, target_id)
            except (TargetNotFoundError, JobInProgressError) as e:
                logger.error("Regenerate refused", error=str(e))
                return 1
            print(f"Job {job.id} reset to {job.status.value}")
        else:
            queued = await service.regenerate_existing(kind)
            print(f"Re-queued {queued} {kind.value} records")
    finally:
        await pool.close()
    return 0


def _print_batch(result) -> None:
    print(
        f"Processed {result.processed} jobs: {result.succeeded} succeeded, "
        f"{result.failed} failed, {result.skipped} skipped "
        f"({result.duration_ms} ms)"
    )
    for error in result.errors:
        print(f"  - {error}")


async def cmd_process(args: argparse.Namespace) -> int:
    """Process one batch, or keep processing until the queue is empty."""
    from app.seo.errors import GeneratorNotConfiguredError

    pool, service = await _build_service(with_generator=True)
    try:
        while True:
            try:
                result = await service.process_batch(args.batch_size)
            except GeneratorNotConfiguredError as e:
                logger.error("Cannot process", error=str(e))
                return 1
            _print_batch(result)
            if not args.loop or result.processed + result.skipped == 0:
                break
    finally:
        await pool.close()
    return 0


async def cmd_requeue(args: argparse.Namespace) -> int:
    pool, service = await _build_service()
    try:
        count = await service.requeue_failed()
        print(f"Requeued {count} failed jobs")
    finally:
        await pool.close()
    return 0


async def cmd_sweep(args: argparse.Namespace) -> int:
    """Reset processing jobs stuck longer than the threshold."""
    pool, service = await _build_service()
    try:
        try:
            count = await service.requeue_stale(args.older_than_minutes)
        except ValueError as e:
            logger.error("Invalid threshold", error=str(e))
            return 1
        print(f"Requeued {count} stale processing jobs")
    finally:
        await pool.close()
    return 0


async def cmd_stats(args: argparse.Namespace) -> int:
    pool, service = await _build_service()
    try:
        stats = await service.get_stats()
    finally:
        await pool.close()

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
        return 0

    print("\n" + "=" * 72)
    print("SEO QUEUE STATS")
    print("=" * 72)
    print(
        f"{'Kind':<12}{'Pending':>9}{'Processing':>12}{'Completed':>11}"
        f"{'Failed':>8}{'Jobs':>8}{'Content':>10}"
    )
    print("-" * 72)
    for kind, s in stats.by_kind.items():
        print(
            f"{kind.value:<12}{s.pending:>9}{s.processing:>12}{s.completed:>11}"
            f"{s.failed:>8}{s.total_jobs:>8}{s.total_content:>10}"
        )
    print("=" * 72)
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="SEO queue CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Enqueue command
    enqueue_parser = subparsers.add_parser("enqueue", help="Enqueue SEO jobs")
    enqueue_parser.add_argument(
        "--kind", "-k", required=True, choices=KIND_CHOICES, help="Content kind"
    )
    enqueue_parser.add_argument("--id", help="Single target ID")
    enqueue_parser.add_argument(
        "--all-approved",
        action="store_true",
        help="Enqueue every eligible record of the kind",
    )

    # Enqueue-missing command
    missing_parser = subparsers.add_parser(
        "enqueue-missing", help="Enqueue records that have no job"
    )
    missing_parser.add_argument(
        "--kind", "-k", choices=KIND_CHOICES, help="Content kind (default: all)"
    )

    # Regenerate command
    regen_parser = subparsers.add_parser(
        "regenerate", help="Re-queue targets that already have jobs"
    )
    regen_parser.add_argument(
        "--kind", "-k", required=True, choices=KIND_CHOICES, help="Content kind"
    )
    regen_parser.add_argument("--id", help="Single target ID")
    regen_parser.add_argument(
        "--existing",
        action="store_true",
        help="Re-queue every record of the kind that has seo_metadata",
    )

    # Process command
    process_parser = subparsers.add_parser("process", help="Process pending jobs")
    process_parser.add_argument(
        "--batch-size",
        "-b",
        type=int,
        help="Jobs per batch (default: SEO_BATCH_SIZE)",
    )
    process_parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep processing batches until the queue is empty",
    )

    # Requeue command
    subparsers.add_parser("requeue", help="Reset failed jobs to pending")

    # Sweep command
    sweep_parser = subparsers.add_parser(
        "sweep", help="Reset stale processing jobs to pending"
    )
    sweep_parser.add_argument(
        "--older-than-minutes",
        "-m",
        type=int,
        help="Staleness threshold (default: SEO_STALE_PROCESSING_MINUTES)",
    )

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Show queue statistics")
    stats_parser.add_argument("--json", action="store_true", help="Print JSON")

    args = parser.parse_args()

    commands = {
        "enqueue": cmd_enqueue,
        "enqueue-missing": cmd_enqueue_missing,
        "regenerate": cmd_regenerate,
        "process": cmd_process,
        "requeue": cmd_requeue,
        "sweep": cmd_sweep,
        "stats": cmd_stats,
    }
    exit_code = asyncio.run(commands[args.command](args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
