"""
Dead-letter inspection and requeue.
"""

import logging
from uuid import UUID

from ingest_queue.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, SPAN_REQUEUE_DEAD_LETTER
from ingest_queue.observability.metrics import get_metrics
from ingest_queue.observability.tracing import start_span
from ingest_queue.queue.store import queue_repository
from ingest_queue.types.job import JobSnapshot
from ingest_queue.types.queue import RequeueManyResult

logger = logging.getLogger(__name__)


def _check_page(limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")
    if offset < 0:
        raise ValueError("offset must be >= 0")


async def list_dead_letter(
    tenant_id: str | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
    offset: int = 0,
    include_payload: bool = False,
) -> list[JobSnapshot]:
    """
    List dead-lettered jobs, most recently dead-lettered first.

    Args:
        tenant_id: Optional tenant filter.
        limit: Page size.
        offset: Page offset.
        include_payload: Whether snapshots carry the event payload.

    Returns:
        Snapshots of the jobs on the page.
    """
    _check_page(limit, offset)
    async with queue_repository() as repo:
        jobs = await repo.list_dead_letter(tenant_id=tenant_id, limit=limit, offset=offset)
        return [JobSnapshot.from_job(job, include_payload=include_payload) for job in jobs]


async def requeue_one(job_id: UUID) -> bool:
    """
    Return a dead-lettered job to pending with its attempts reset.

    Returns:
        False if the job does not exist or is not dead-lettered.
    """
    with start_span(SPAN_REQUEUE_DEAD_LETTER, job_id=job_id):
        async with queue_repository() as repo:
            requeued = await repo.requeue_dead_letter(job_id)

    if requeued:
        get_metrics().record_requeued()
    return requeued


async def requeue_many(
    tenant_id: str | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
    offset: int = 0,
) -> RequeueManyResult:
    """
    Requeue one page of dead-lettered jobs.

    The page is selected the same way list_dead_letter selects it. Jobs that
    left the dead-letter state between selection and requeue are skipped.
    """
    _check_page(limit, offset)
    with start_span(SPAN_REQUEUE_DEAD_LETTER, tenant_id=tenant_id, limit=limit):
        async with queue_repository() as repo:
            jobs = await repo.list_dead_letter(tenant_id=tenant_id, limit=limit, offset=offset)
            requeued = 0
            for job in jobs:
                if await repo.requeue_dead_letter(job.id):
                    requeued += 1

    get_metrics().record_requeued(requeued)
    result = RequeueManyResult(
        matched_count=len(jobs),
        requeued_count=requeued,
        skipped_count=len(jobs) - requeued,
    )
    logger.info(
        "Dead-letter requeue finished",
        extra={"tenant_id": tenant_id, **result.model_dump()},
    )
    return result
