"""
Scheduling primitives: force a job due now, look a job up.
"""

import logging
from uuid import UUID

from ingest_queue.queue.store import queue_repository
from ingest_queue.types.job import JobSnapshot

logger = logging.getLogger(__name__)


async def schedule_now(job_id: UUID) -> bool:
    """
    Make a job due immediately.

    Status and attempt_count are left untouched, so a job that is not
    pending is not revived by this call.

    Returns:
        False if the job does not exist.
    """
    async with queue_repository() as repo:
        scheduled = await repo.schedule_now(job_id)

    if scheduled:
        logger.info("Job scheduled for immediate attempt", extra={"job_id": str(job_id)})
    return scheduled


async def get_job(job_id: UUID, include_payload: bool = True) -> JobSnapshot | None:
    """Snapshot of a job, or None if it does not exist."""
    async with queue_repository() as repo:
        job = await repo.get_job(job_id)
        if job is None:
            return None
        return JobSnapshot.from_job(job, include_payload=include_payload)
