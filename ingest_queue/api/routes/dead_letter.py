"""
Dead-letter routes.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from ingest_queue.constants import API_V1_PREFIX, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ingest_queue.queue import dead_letter
from ingest_queue.types.api import (
    DeadLetterListResponse,
    RequeueManyRequest,
    RequeueOneResponse,
)
from ingest_queue.types.queue import RequeueManyResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/dead-letter", tags=["Dead Letter"])


@router.get(
    "",
    response_model=DeadLetterListResponse,
    summary="List dead-lettered jobs",
    description="Most recently dead-lettered first, optionally for one tenant.",
)
async def list_dead_letter(
    tenant_id: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = DEFAULT_PAGE_LIMIT,
    offset: Annotated[int, Query(ge=0)] = 0,
    include_payload: Annotated[bool, Query()] = False,
) -> DeadLetterListResponse:
    jobs = await dead_letter.list_dead_letter(
        tenant_id=tenant_id,
        limit=limit,
        offset=offset,
        include_payload=include_payload,
    )
    return DeadLetterListResponse(
        tenant_id=tenant_id,
        limit=limit,
        offset=offset,
        count=len(jobs),
        include_payload=include_payload,
        jobs=jobs,
    )


@router.post(
    "/requeue",
    response_model=RequeueManyResult,
    summary="Requeue a page of dead-lettered jobs",
)
async def requeue_many(request: RequeueManyRequest | None = None) -> RequeueManyResult:
    request = request or RequeueManyRequest()
    return await dead_letter.requeue_many(
        tenant_id=request.tenant_id,
        limit=request.limit,
        offset=request.offset,
    )


@router.post(
    "/{job_id}/requeue",
    response_model=RequeueOneResponse,
    summary="Requeue one dead-lettered job",
    description="`requeued` is false when the job is missing or not dead-lettered.",
)
async def requeue_one(job_id: UUID) -> RequeueOneResponse:
    requeued = await dead_letter.requeue_one(job_id)
    return RequeueOneResponse(job_id=job_id, requeued=requeued)
