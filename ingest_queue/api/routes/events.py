"""
Event submission routes.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Response, status

from ingest_queue.constants import API_V1_PREFIX
from ingest_queue.queue.gateway import enqueue
from ingest_queue.types.api import EnqueueResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/events", tags=["Events"])


@router.post(
    "",
    response_model=EnqueueResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a website event",
    description=(
        "Queue an event envelope for CRM ingestion. Returns 202 for a new event "
        "and 200 with the original job id for a duplicate submission."
    ),
)
async def submit_event(
    response: Response,
    envelope: dict[str, Any] = Body(...),
) -> EnqueueResponse:
    """
    Submit an event envelope.

    The envelope is validated here; handlers run later in a worker.

    Args:
        response: Used to downgrade the status to 200 for duplicates.
        envelope: Envelope in producer shape (camelCase or snake_case).

    Returns:
        EnqueueResponse with the job id.
    """
    result = await enqueue(envelope)

    if result.duplicate:
        response.status_code = status.HTTP_200_OK
        message = "Event already accepted"
    else:
        message = "Event queued for ingestion"

    return EnqueueResponse(
        accepted=result.accepted,
        duplicate=result.duplicate,
        job_id=result.job_id,
        message=message,
    )
