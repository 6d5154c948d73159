"""
Queue processing and statistics routes.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from ingest_queue.constants import API_V1_PREFIX, MAX_PAGE_LIMIT
from ingest_queue.queue.dispatcher import BatchDispatcher
from ingest_queue.queue.reporting import get_queue_stats
from ingest_queue.types.queue import BatchResult, DrainResult, QueueStats

router = APIRouter(prefix=f"{API_V1_PREFIX}/queue", tags=["Queue"])


@router.post(
    "/process",
    response_model=BatchResult,
    summary="Process one batch",
    description="Claim up to `limit` due jobs and run their handlers.",
)
async def process_batch(
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_LIMIT)] = None,
) -> BatchResult:
    return await BatchDispatcher().process_batch(limit)


@router.post(
    "/drain",
    response_model=DrainResult,
    summary="Drain the queue",
    description="Process batches until one finds nothing due or `max_loops` is reached.",
)
async def drain_queue(
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_LIMIT)] = None,
    max_loops: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> DrainResult:
    return await BatchDispatcher().drain(limit, max_loops)


@router.get(
    "/stats",
    response_model=QueueStats,
    summary="Queue statistics",
)
async def queue_stats() -> QueueStats:
    return await get_queue_stats()
