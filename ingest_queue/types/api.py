"""
API request and response type definitions.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from ingest_queue.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ingest_queue.types.job import JobSnapshot


class EnqueueResponse(BaseModel):
    """Response body after submitting an event."""

    accepted: bool
    duplicate: bool
    job_id: UUID
    message: str


class DeadLetterListResponse(BaseModel):
    """Page of dead-lettered jobs."""

    tenant_id: str | None
    limit: int
    offset: int
    count: int
    include_payload: bool
    jobs: list[JobSnapshot]


class RequeueManyRequest(BaseModel):
    """Request body for a filtered dead-letter requeue."""

    tenant_id: str | None = Field(default=None, description="Restrict to one tenant")
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT)
    offset: int = Field(default=0, ge=0)


class RequeueOneResponse(BaseModel):
    """Response body after a single-job requeue."""

    job_id: UUID
    requeued: bool


class ScheduleNowResponse(BaseModel):
    """Response body after forcing a job to be due now."""

    job_id: UUID
    scheduled: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    message: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | list | None = None
    # Partial accounting when a batch could not be fully finalized
    result: dict | None = None
