"""
Drain the ingestion queue once and report totals.

    ingest-drain --limit 25 --max-loops 10
"""

import argparse
import asyncio
import json
import logging
import sys

from ingest_queue.config import get_settings
from ingest_queue.db import close_db, init_db
from ingest_queue.errors import BatchIncompleteError, StoreUnavailableError
from ingest_queue.observability.logging import setup_logging
from ingest_queue.queue.dispatcher import BatchDispatcher
from ingest_queue.queue.reporting import ensure_ready

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    ap = argparse.ArgumentParser(prog="ingest-drain", description=__doc__.strip().splitlines()[0])
    ap.add_argument("--limit", type=int, default=settings.queue_batch_size, help="Jobs per batch")
    ap.add_argument(
        "--max-loops",
        type=int,
        default=settings.worker_max_loops,
        help="Stop after this many batches even if jobs remain",
    )
    return ap


async def drain_command(limit: int, max_loops: int) -> int:
    await init_db()
    try:
        await ensure_ready()
        totals = await BatchDispatcher().drain(limit=limit, max_loops=max_loops)
    except StoreUnavailableError as e:
        print(json.dumps({"event": "drain_failed", "error": str(e)}))
        return 1
    except BatchIncompleteError as e:
        print(json.dumps({"event": "drain_failed", "error": str(e), **e.result.model_dump()}))
        return 1
    finally:
        await close_db()

    print(json.dumps({"event": "drain_completed", "limit": limit, **totals.model_dump()}))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.limit < 1 or args.max_loops < 1:
        print("--limit and --max-loops must be >= 1", file=sys.stderr)
        return 2

    setup_logging()
    return asyncio.run(drain_command(args.limit, args.max_loops))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
