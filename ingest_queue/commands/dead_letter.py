"""
Inspect and requeue dead-lettered jobs.

    ingest-dead-letter list [--tenant-id T] [--limit N] [--offset N] [--include-payload]
    ingest-dead-letter requeue --job-id UUID
    ingest-dead-letter requeue [--tenant-id T] [--limit N] [--offset N]
"""

import argparse
import asyncio
import json
import sys
from uuid import UUID

from ingest_queue.constants import DEFAULT_PAGE_LIMIT
from ingest_queue.db import close_db, init_db
from ingest_queue.errors import StoreUnavailableError
from ingest_queue.observability.logging import setup_logging
from ingest_queue.queue.dead_letter import list_dead_letter, requeue_many, requeue_one
from ingest_queue.queue.reporting import ensure_ready


def _add_page_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tenant-id", default=None, help="Restrict to one tenant")
    parser.add_argument("--limit", type=int, default=DEFAULT_PAGE_LIMIT)
    parser.add_argument("--offset", type=int, default=0)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="ingest-dead-letter", description="Dead-letter queue tools")
    sub = ap.add_subparsers(dest="command", required=True)

    list_parser = sub.add_parser("list", help="List dead-lettered jobs")
    _add_page_arguments(list_parser)
    list_parser.add_argument("--include-payload", action="store_true")

    requeue_parser = sub.add_parser("requeue", help="Requeue dead-lettered jobs")
    _add_page_arguments(requeue_parser)
    requeue_parser.add_argument("--job-id", type=UUID, default=None, help="Requeue a single job")

    return ap


def _emit(document: dict) -> None:
    print(json.dumps(document, default=str))


async def _list(args: argparse.Namespace) -> int:
    jobs = await list_dead_letter(
        tenant_id=args.tenant_id,
        limit=args.limit,
        offset=args.offset,
        include_payload=args.include_payload,
    )
    _emit(
        {
            "event": "dead_letter_list",
            "tenant_id": args.tenant_id or "all",
            "limit": args.limit,
            "offset": args.offset,
            "count": len(jobs),
            "include_payload": args.include_payload,
            "jobs": [job.model_dump(mode="json", exclude_none=True) for job in jobs],
        }
    )
    return 0


async def _requeue(args: argparse.Namespace) -> int:
    if args.job_id is not None:
        requeued = await requeue_one(args.job_id)
        _emit({"event": "dead_letter_requeue_one", "job_id": args.job_id, "requeued": requeued})
        return 0 if requeued else 1

    result = await requeue_many(tenant_id=args.tenant_id, limit=args.limit, offset=args.offset)
    _emit(
        {
            "event": "dead_letter_requeue_many",
            "tenant_id": args.tenant_id or "all",
            "limit": args.limit,
            "offset": args.offset,
            **result.model_dump(),
        }
    )
    return 0


async def dead_letter_command(args: argparse.Namespace) -> int:
    await init_db()
    try:
        await ensure_ready()
        if args.command == "list":
            return await _list(args)
        return await _requeue(args)
    except StoreUnavailableError as e:
        _emit({"event": "dead_letter_failed", "error": str(e)})
        return 1
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(dead_letter_command(args))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
