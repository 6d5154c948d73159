"""
Enqueue gateway: the single entry point producers use to submit events.
"""

import logging
from collections.abc import Mapping
from typing import Any

from ingest_queue.config import Settings, get_settings
from ingest_queue.constants import SPAN_ENQUEUE
from ingest_queue.observability.metrics import get_metrics
from ingest_queue.observability.tracing import start_span
from ingest_queue.queue.fingerprint import compute_dedup_key
from ingest_queue.queue.reporting import ensure_ready
from ingest_queue.queue.store import queue_repository
from ingest_queue.types.envelope import EventEnvelope, parse_envelope
from ingest_queue.types.queue import EnqueueResult

logger = logging.getLogger(__name__)


async def enqueue(
    envelope: EventEnvelope | Mapping[str, Any],
    *,
    max_attempts: int | None = None,
    settings: Settings | None = None,
) -> EnqueueResult:
    """
    Accept an event for asynchronous ingestion.

    The envelope is validated before anything is written. A resubmission of
    an already accepted envelope returns the original job id with
    duplicate=True and writes nothing. Handlers are never invoked here.

    Args:
        envelope: An EventEnvelope or a mapping in producer shape.
        max_attempts: Attempt budget for the job. Defaults to settings.
        settings: Settings override.

    Returns:
        EnqueueResult with the job id.

    Raises:
        EnvelopeValidationError: If the envelope is malformed.
        StoreUnavailableError: If the queue store is not ready.
        ValueError: If max_attempts is below 1.
    """
    settings = settings or get_settings()
    envelope = parse_envelope(envelope)

    attempts = max_attempts if max_attempts is not None else settings.queue_max_attempts
    if attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    dedup_key = compute_dedup_key(envelope, settings.dedup_include_occurred_at)

    await ensure_ready()

    with start_span(
        SPAN_ENQUEUE,
        tenant_id=envelope.tenant.tenant_id,
        event_type=envelope.event_type,
    ) as span:
        async with queue_repository() as repo:
            job_id, created = await repo.insert_job(envelope, dedup_key, attempts)
        span.set_attribute("duplicate", not created)

    get_metrics().record_enqueue(
        tenant_id=envelope.tenant.tenant_id,
        event_type=envelope.event_type,
        duplicate=not created,
    )

    return EnqueueResult(accepted=created, duplicate=not created, job_id=job_id)
