"""
Ingestion queue operations.
"""

from ingest_queue.queue.backoff import (
    BackoffPolicy,
    compute_backoff_delay,
    compute_next_attempt_at,
)
from ingest_queue.queue.dead_letter import list_dead_letter, requeue_many, requeue_one
from ingest_queue.queue.dispatcher import BatchDispatcher, drain, process_batch
from ingest_queue.queue.fingerprint import compute_dedup_key
from ingest_queue.queue.gateway import enqueue
from ingest_queue.queue.reporting import (
    check_readiness,
    ensure_ready,
    get_queue_stats,
    get_tenant_summary,
)
from ingest_queue.queue.scheduling import get_job, schedule_now

__all__ = [
    "BackoffPolicy",
    "compute_backoff_delay",
    "compute_next_attempt_at",
    "compute_dedup_key",
    "enqueue",
    "BatchDispatcher",
    "process_batch",
    "drain",
    "list_dead_letter",
    "requeue_one",
    "requeue_many",
    "schedule_now",
    "get_job",
    "check_readiness",
    "ensure_ready",
    "get_tenant_summary",
    "get_queue_stats",
]
