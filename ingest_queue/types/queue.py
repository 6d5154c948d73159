"""
Result types returned by the queue operations.
"""

from uuid import UUID

from pydantic import BaseModel


class EnqueueResult(BaseModel):
    """Outcome of submitting an envelope to the queue."""

    accepted: bool
    duplicate: bool
    job_id: UUID


class BatchResult(BaseModel):
    """
    Accounting for one dispatcher pass.

    picked_count == processed_count + requeued_count + dead_lettered_count
                    + lost_claim_count + unfinalized_count

    lost_claim_count counts attempts that finished after the reaper had
    already recovered their claim. Their results are discarded and the job
    is reported by the batch that next claims it.
    """

    picked_count: int = 0
    processed_count: int = 0
    failed_count: int = 0
    requeued_count: int = 0
    dead_lettered_count: int = 0
    lost_claim_count: int = 0
    # Jobs whose finalization raised; only set on BatchIncompleteError.result
    unfinalized_count: int = 0

    @property
    def drained(self) -> bool:
        """True when the pass found nothing to claim."""
        return self.picked_count == 0


class DrainResult(BaseModel):
    """Totals accumulated by a drain loop."""

    loops: int = 0
    total_picked: int = 0
    total_processed: int = 0
    total_failed: int = 0
    total_requeued: int = 0
    total_dead_lettered: int = 0
    total_lost_claims: int = 0

    def add(self, batch: BatchResult) -> None:
        self.loops += 1
        self.total_picked += batch.picked_count
        self.total_processed += batch.processed_count
        self.total_failed += batch.failed_count
        self.total_requeued += batch.requeued_count
        self.total_dead_lettered += batch.dead_lettered_count
        self.total_lost_claims += batch.lost_claim_count


class RequeueManyResult(BaseModel):
    """Outcome of a filtered dead-letter requeue."""

    matched_count: int
    requeued_count: int
    skipped_count: int


class Readiness(BaseModel):
    """Whether the queue store can be used."""

    ready: bool
    message: str


class TenantSummary(BaseModel):
    """Point-in-time CRM counters for a tenant."""

    tenant_id: str
    contact_count: int
    lead_count: int
    activity_count: int


class QueueStats(BaseModel):
    """Job counts by status, optionally scoped to a tenant."""

    tenant_id: str | None = None
    by_status: dict[str, int]
    pending_ready_count: int
