"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ingest_queue.constants import JobStatus
from ingest_queue.types.envelope import TenantRef


class JobResult(BaseModel):
    """
    Result of a handler invocation.
    Returned by handlers; raising an exception is treated the same as success=False.
    """

    success: bool
    output: dict[str, Any] | None = None
    # Human-readable reason; the registry fills in error_code when classifying
    error: str | None = None
    error_code: str | None = None
    # False marks a failure that must dead-letter without further retries
    retryable: bool = True


@dataclass
class JobContext:
    """
    Context passed to handlers during execution.
    Contains the job's envelope data and attempt bookkeeping.
    """

    job_id: UUID
    event_type: str
    event_version: int
    occurred_at: datetime
    tenant: TenantRef
    payload: dict[str, Any]
    attempt: int
    max_attempts: int

    @property
    def tenant_id(self) -> str:
        return self.tenant.tenant_id

    @property
    def is_last_attempt(self) -> bool:
        """Check if this is the last retry attempt."""
        return self.attempt >= self.max_attempts

    @property
    def remaining_attempts(self) -> int:
        """Get remaining retry attempts."""
        return max(0, self.max_attempts - self.attempt)


class JobSnapshot(BaseModel):
    """
    Read-only view of a queue job.
    Used for dead-letter listings, job lookups and API responses.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: str
    event_type: str
    event_version: int
    dedup_key: str
    status: JobStatus
    attempt_count: int
    max_attempts: int
    last_error: str | None
    last_error_detail: str | None = None
    occurred_at: datetime
    next_attempt_at: datetime
    claimed_at: datetime | None
    processed_at: datetime | None
    dead_lettered_at: datetime | None
    created_at: datetime
    updated_at: datetime
    payload: dict[str, Any] | None = None

    @classmethod
    def from_job(cls, job: Any, include_payload: bool = True) -> "JobSnapshot":
        """Build a snapshot from a QueueJob row, optionally dropping the payload."""
        snapshot = cls.model_validate(job)
        if not include_payload:
            snapshot.payload = None
        return snapshot
