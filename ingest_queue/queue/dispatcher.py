"""
Batch dispatcher: claims due jobs and runs their handlers.

A pass claims jobs in one transaction, runs the handlers concurrently with no
session open, and finalizes each job in its own transaction. Finalization is
fenced on the claimed attempt, so a job recovered by the reaper in the
meantime is left alone.
"""

import asyncio
import logging
import random
import time

from ingest_queue.clock import utcnow
from ingest_queue.config import Settings, get_settings
from ingest_queue.constants import (
    ERROR_INGESTION_FAILED,
    SPAN_CLAIM_BATCH,
    SPAN_EXECUTE_HANDLER,
)
from ingest_queue.db.models import QueueJob
from ingest_queue.errors import BatchIncompleteError
from ingest_queue.handlers import HandlerRegistry, default_registry
from ingest_queue.observability.logging import job_log_context
from ingest_queue.observability.metrics import get_metrics
from ingest_queue.observability.tracing import start_span
from ingest_queue.queue.backoff import BackoffPolicy, compute_next_attempt_at
from ingest_queue.queue.reporting import ensure_ready
from ingest_queue.queue.store import queue_repository
from ingest_queue.types.envelope import TenantRef
from ingest_queue.types.job import JobContext, JobResult
from ingest_queue.types.queue import BatchResult, DrainResult

logger = logging.getLogger(__name__)

OUTCOME_SUCCEEDED = "succeeded"
OUTCOME_REQUEUED = "requeued"
OUTCOME_DEAD_LETTERED = "dead_lettered"
OUTCOME_CLAIM_LOST = "claim_lost"


class BatchDispatcher:
    """
    Runs claimed queue jobs through the handler registry.

    Several dispatchers, in one process or many, may run against the same
    store at once; the claim statement keeps them from sharing a job.
    """

    def __init__(
        self,
        registry: HandlerRegistry | None = None,
        settings: Settings | None = None,
        backoff: BackoffPolicy | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: Handler registry. Defaults to the CRM handlers.
            settings: Settings override.
            backoff: Backoff policy. Defaults to the one in settings.
            rng: Random source for backoff jitter.
        """
        settings = settings or get_settings()
        self.registry = registry or default_registry
        self.batch_size = settings.queue_batch_size
        self.concurrency = settings.dispatcher_concurrency
        self.handler_timeout = settings.dispatcher_handler_timeout_seconds
        self.max_loops = settings.worker_max_loops
        self.backoff = backoff or BackoffPolicy.from_settings(settings)
        self._rng = rng
        self._metrics = get_metrics()

    async def process_batch(self, limit: int | None = None) -> BatchResult:
        """
        Claim up to `limit` due jobs and run each through its handler.

        Args:
            limit: Maximum jobs to claim. Defaults to settings.queue_batch_size.

        Returns:
            BatchResult; picked_count == 0 means nothing was due.

        Raises:
            StoreUnavailableError: If the queue store is not ready.
            BatchIncompleteError: If some jobs could not be finalized. The
                error carries the accounting for the rest of the batch.
            ValueError: If limit is below 1.
        """
        limit = limit if limit is not None else self.batch_size
        if limit < 1:
            raise ValueError("limit must be >= 1")

        await ensure_ready()

        with start_span(SPAN_CLAIM_BATCH, limit=limit) as span:
            async with queue_repository() as repo:
                jobs = await repo.claim_due_jobs(limit)
            span.set_attribute("claimed", len(jobs))

        self._metrics.record_claimed(len(jobs))
        result = BatchResult(picked_count=len(jobs))
        if not jobs:
            return result

        semaphore = asyncio.Semaphore(min(limit, self.concurrency))

        async def run(job: QueueJob) -> str:
            async with semaphore:
                return await self._process_job(job)

        outcomes = await asyncio.gather(*(run(job) for job in jobs), return_exceptions=True)

        errors: list[BaseException] = []
        for job, outcome in zip(jobs, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                errors.append(outcome)
                logger.error(
                    "Job could not be finalized",
                    exc_info=outcome,
                    extra={"job_id": str(job.id), "error": str(outcome)},
                )
            elif outcome == OUTCOME_SUCCEEDED:
                result.processed_count += 1
            elif outcome == OUTCOME_REQUEUED:
                result.requeued_count += 1
            elif outcome == OUTCOME_DEAD_LETTERED:
                result.dead_lettered_count += 1
            else:
                result.lost_claim_count += 1
        result.failed_count = result.requeued_count + result.dead_lettered_count

        if errors:
            # Unfinalized jobs stay in processing until the reaper recovers them
            result.unfinalized_count = len(errors)
            raise BatchIncompleteError(
                f"{len(errors)} of {len(jobs)} jobs could not be finalized",
                result=result,
                errors=errors,
            ) from errors[0]

        logger.info(
            "Batch processed",
            extra=result.model_dump(),
        )
        return result

    async def drain(
        self,
        limit: int | None = None,
        max_loops: int | None = None,
    ) -> DrainResult:
        """
        Run batches until one finds nothing due or max_loops is reached.

        Jobs requeued with a backoff delay are not due again within the drain,
        so the loop ends even when every handler fails.
        """
        max_loops = max_loops if max_loops is not None else self.max_loops
        if max_loops < 1:
            raise ValueError("max_loops must be >= 1")

        totals = DrainResult()
        while totals.loops < max_loops:
            batch = await self.process_batch(limit)
            totals.add(batch)
            if batch.drained:
                break
        return totals

    def _build_context(self, job: QueueJob) -> JobContext:
        return JobContext(
            job_id=job.id,
            event_type=job.event_type,
            event_version=job.event_version,
            occurred_at=job.occurred_at,
            tenant=TenantRef(
                tenant_id=job.tenant_id,
                tenant_slug=job.tenant_slug,
                tenant_domain=job.tenant_domain,
            ),
            payload=job.payload,
            attempt=job.attempt_count,
            max_attempts=job.max_attempts,
        )

    async def _process_job(self, job: QueueJob) -> str:
        context = self._build_context(job)
        start_time = time.monotonic()

        with (
            job_log_context(job.id, job.tenant_id, job.event_type, job.attempt_count),
            start_span(
                SPAN_EXECUTE_HANDLER,
                job_id=job.id,
                tenant_id=job.tenant_id,
                event_type=job.event_type,
                attempt=job.attempt_count,
            ) as span,
        ):
            result = await self.registry.execute(context, timeout=self.handler_timeout)
            outcome = await self._finalize(job, result)
            span.set_attribute("outcome", outcome)

        if outcome == OUTCOME_CLAIM_LOST:
            self._metrics.record_claim_lost(job.tenant_id)
            return outcome

        self._metrics.record_job_finalized(
            tenant_id=job.tenant_id,
            event_type=job.event_type,
            outcome=outcome,
            duration_seconds=time.monotonic() - start_time,
        )
        return outcome

    async def _finalize(self, job: QueueJob, result: JobResult) -> str:
        """
        Apply a handler result to the job.

        Every transition is fenced on the claim, so a job the reaper already
        recovered is left alone and OUTCOME_CLAIM_LOST is returned.
        """
        now = utcnow()

        async with queue_repository() as repo:
            if result.success:
                if not await repo.mark_succeeded(job.id, job.attempt_count, now):
                    return OUTCOME_CLAIM_LOST
                return OUTCOME_SUCCEEDED

            error_code = result.error_code or ERROR_INGESTION_FAILED

            if result.retryable and job.is_retryable:
                next_attempt_at = compute_next_attempt_at(
                    job.attempt_count, now, self.backoff, self._rng
                )
                if not await repo.mark_requeued(
                    job.id,
                    job.attempt_count,
                    error_code,
                    next_attempt_at,
                    error_detail=result.error,
                    now=now,
                ):
                    return OUTCOME_CLAIM_LOST
                logger.warning(
                    "Job failed, retry scheduled",
                    extra={
                        "job_id": str(job.id),
                        "error": error_code,
                        "detail": result.error,
                        "next_attempt_at": next_attempt_at.isoformat(),
                    },
                )
                return OUTCOME_REQUEUED

            if not await repo.mark_dead_lettered(
                job.id, job.attempt_count, error_code, error_detail=result.error, now=now
            ):
                return OUTCOME_CLAIM_LOST
            return OUTCOME_DEAD_LETTERED


async def process_batch(limit: int | None = None) -> BatchResult:
    """Run one batch with a dispatcher built from settings."""
    return await BatchDispatcher().process_batch(limit)


async def drain(limit: int | None = None, max_loops: int | None = None) -> DrainResult:
    """Drain the queue with a dispatcher built from settings."""
    return await BatchDispatcher().drain(limit, max_loops)
