"""
Type definitions for the ingestion queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from ingest_queue.types.api import (
    DeadLetterListResponse,
    EnqueueResponse,
    ErrorResponse,
    HealthResponse,
    RequeueManyRequest,
    RequeueOneResponse,
    ScheduleNowResponse,
)
from ingest_queue.types.envelope import EventEnvelope, TenantRef, parse_envelope
from ingest_queue.types.job import JobContext, JobResult, JobSnapshot
from ingest_queue.types.queue import (
    BatchResult,
    DrainResult,
    EnqueueResult,
    QueueStats,
    Readiness,
    RequeueManyResult,
    TenantSummary,
)

__all__ = [
    # API types
    "EnqueueResponse",
    "DeadLetterListResponse",
    "RequeueManyRequest",
    "RequeueOneResponse",
    "ScheduleNowResponse",
    "HealthResponse",
    "ErrorResponse",
    # Envelope types
    "EventEnvelope",
    "TenantRef",
    "parse_envelope",
    # Job types
    "JobContext",
    "JobResult",
    "JobSnapshot",
    # Queue results
    "EnqueueResult",
    "BatchResult",
    "DrainResult",
    "RequeueManyResult",
    "Readiness",
    "TenantSummary",
    "QueueStats",
]
