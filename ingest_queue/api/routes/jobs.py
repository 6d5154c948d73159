"""
Job lookup and scheduling routes.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from ingest_queue.constants import API_V1_PREFIX
from ingest_queue.queue.scheduling import get_job, schedule_now
from ingest_queue.types.api import ScheduleNowResponse
from ingest_queue.types.job import JobSnapshot

router = APIRouter(prefix=f"{API_V1_PREFIX}/jobs", tags=["Jobs"])


@router.get(
    "/{job_id}",
    response_model=JobSnapshot,
    summary="Get job",
)
async def get_job_by_id(
    job_id: UUID,
    include_payload: Annotated[bool, Query()] = True,
) -> JobSnapshot:
    """
    Get a queue job by ID.

    Raises:
        HTTPException: 404 if the job does not exist.
    """
    job = await get_job(job_id, include_payload=include_payload)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )
    return job


@router.post(
    "/{job_id}/schedule-now",
    response_model=ScheduleNowResponse,
    summary="Make a job due now",
    description="Sets next_attempt_at to now without changing status or attempts.",
)
async def schedule_job_now(job_id: UUID) -> ScheduleNowResponse:
    if not await schedule_now(job_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )
    return ScheduleNowResponse(job_id=job_id, scheduled=True)
