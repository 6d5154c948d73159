"""
Queue repository for database operations.
Implements the data access patterns for the ingestion queue.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ingest_queue.clock import utcnow
from ingest_queue.constants import ERROR_STALE_CLAIM, JobStatus
from ingest_queue.db.models import DedupLedgerEntry, QueueJob
from ingest_queue.errors import format_error_detail
from ingest_queue.types.envelope import EventEnvelope

logger = logging.getLogger(__name__)


class QueueRepository:
    """
    Repository for queue job database operations.

    Implements atomic operations for:
    - Job insertion deduplicated by a unique dedup key
    - Claiming due jobs with FOR UPDATE SKIP LOCKED
    - Fenced status transitions out of PROCESSING
    - Dead-letter requeue and stale claim recovery
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    def _dialect_insert(self, table):
        dialect = self._session.bind.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise RuntimeError(f"Unsupported database dialect: {dialect}")

    async def insert_job(
        self,
        envelope: EventEnvelope,
        dedup_key: str,
        max_attempts: int,
        now: datetime | None = None,
    ) -> tuple[UUID, bool]:
        """
        Insert a pending job and its ledger entry unless the dedup key exists.

        Uses INSERT ... ON CONFLICT DO NOTHING on the dedup key so concurrent
        submissions of the same envelope resolve to a single job.

        Args:
            envelope: The validated envelope.
            dedup_key: Fingerprint of the envelope.
            max_attempts: Attempt budget for the new job.
            now: Insertion time. Defaults to the current time.

        Returns:
            Tuple of (job_id, created) where created is False for a duplicate.
        """
        now = now or utcnow()
        stmt = (
            self._dialect_insert(QueueJob)
            .values(
                id=uuid4(),
                tenant_id=envelope.tenant.tenant_id,
                tenant_slug=envelope.tenant.tenant_slug,
                tenant_domain=envelope.tenant.tenant_domain,
                event_type=envelope.event_type,
                event_version=envelope.version,
                occurred_at=envelope.occurred_at,
                payload=envelope.payload,
                dedup_key=dedup_key,
                status=JobStatus.PENDING,
                attempt_count=0,
                max_attempts=max_attempts,
                next_attempt_at=now,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=[QueueJob.dedup_key])
            .returning(QueueJob.id)
        )

        result = await self._session.execute(stmt)
        job_id = result.scalar_one_or_none()

        if job_id is not None:
            await self._session.execute(
                insert(DedupLedgerEntry).values(
                    dedup_key=dedup_key,
                    job_id=job_id,
                    tenant_id=envelope.tenant.tenant_id,
                    created_at=now,
                )
            )
            logger.info(
                "Created queue job",
                extra={
                    "job_id": str(job_id),
                    "tenant_id": envelope.tenant.tenant_id,
                    "event_type": envelope.event_type,
                },
            )
            return job_id, True

        existing = await self.get_job_id_by_dedup_key(dedup_key)
        if existing is None:
            raise RuntimeError("Job should exist after dedup conflict")

        logger.info(
            "Duplicate submission",
            extra={"job_id": str(existing), "tenant_id": envelope.tenant.tenant_id},
        )
        return existing, False

    async def get_job(self, job_id: UUID) -> QueueJob | None:
        """
        Get a job by ID.

        Args:
            job_id: The job UUID.

        Returns:
            The QueueJob or None if not found.
        """
        stmt = select(QueueJob).where(QueueJob.id == job_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_job_id_by_dedup_key(self, dedup_key: str) -> UUID | None:
        """Resolve a dedup key to its job, via the ledger first."""
        result = await self._session.execute(
            select(DedupLedgerEntry.job_id).where(DedupLedgerEntry.dedup_key == dedup_key)
        )
        job_id = result.scalar_one_or_none()
        if job_id is not None:
            return job_id

        result = await self._session.execute(
            select(QueueJob.id).where(QueueJob.dedup_key == dedup_key)
        )
        return result.scalar_one_or_none()

    async def claim_due_jobs(
        self,
        limit: int,
        now: datetime | None = None,
    ) -> Sequence[QueueJob]:
        """
        Claim up to `limit` due pending jobs.

        This is the critical path for job distribution. The select and the
        status change happen in one UPDATE statement, and the outer WHERE
        re-checks the status, so two concurrent claimers never get the same job.
        attempt_count is incremented as part of the claim.

        Args:
            limit: Maximum number of jobs to claim.
            now: Claim time. Defaults to the current time.

        Returns:
            Claimed jobs, oldest next_attempt_at first.
        """
        now = now or utcnow()

        due_ids = (
            select(QueueJob.id)
            .where(
                and_(
                    QueueJob.status == JobStatus.PENDING,
                    QueueJob.next_attempt_at <= now,
                )
            )
            .order_by(QueueJob.next_attempt_at.asc(), QueueJob.created_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )

        stmt = (
            update(QueueJob)
            .where(
                and_(
                    QueueJob.id.in_(due_ids),
                    QueueJob.status == JobStatus.PENDING,
                )
            )
            .values(
                status=JobStatus.PROCESSING,
                attempt_count=QueueJob.attempt_count + 1,
                claimed_at=now,
                updated_at=now,
            )
            .returning(QueueJob)
            .execution_options(synchronize_session=False, populate_existing=True)
        )

        result = await self._session.execute(stmt)
        jobs = sorted(
            result.scalars().all(),
            key=lambda job: (job.next_attempt_at, job.created_at),
        )

        if jobs:
            logger.info(
                f"Claimed {len(jobs)} jobs",
                extra={"job_count": len(jobs)},
            )

        return jobs

    async def _finalize(self, job_id: UUID, attempt: int, **values) -> bool:
        stmt = (
            update(QueueJob)
            .where(
                and_(
                    QueueJob.id == job_id,
                    QueueJob.status == JobStatus.PROCESSING,
                    QueueJob.attempt_count == attempt,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            logger.warning(
                "Claim no longer held, transition skipped",
                extra={"job_id": str(job_id), "attempt": attempt},
            )
            return False
        return True

    async def mark_succeeded(
        self,
        job_id: UUID,
        attempt: int,
        now: datetime | None = None,
    ) -> bool:
        """
        Transition a claimed job to SUCCEEDED.

        Args:
            job_id: The job UUID.
            attempt: The attempt_count the claim was taken with.
            now: Completion time.

        Returns:
            True if the claim was still held and the job transitioned.
        """
        now = now or utcnow()
        return await self._finalize(
            job_id,
            attempt,
            status=JobStatus.SUCCEEDED,
            last_error=None,
            last_error_detail=None,
            processed_at=now,
            claimed_at=None,
            updated_at=now,
        )

    async def mark_requeued(
        self,
        job_id: UUID,
        attempt: int,
        error_code: str,
        next_attempt_at: datetime,
        error_detail: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Return a claimed job to PENDING after a failed attempt.

        Args:
            job_id: The job UUID.
            attempt: The attempt_count the claim was taken with.
            error_code: Failure code stored in last_error.
            error_detail: Failure description stored in last_error_detail.
            next_attempt_at: Earliest time of the next attempt.
            now: Transition time.

        Returns:
            True if the claim was still held and the job transitioned.
        """
        now = now or utcnow()
        return await self._finalize(
            job_id,
            attempt,
            status=JobStatus.PENDING,
            last_error=error_code,
            last_error_detail=format_error_detail(error_detail),
            next_attempt_at=next_attempt_at,
            claimed_at=None,
            updated_at=now,
        )

    async def mark_dead_lettered(
        self,
        job_id: UUID,
        attempt: int,
        error_code: str,
        error_detail: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Move a claimed job to DEAD_LETTER.

        Args:
            job_id: The job UUID.
            attempt: The attempt_count the claim was taken with.
            error_code: Failure code stored in last_error.
            error_detail: Failure description stored in last_error_detail.
            now: Transition time.

        Returns:
            True if the claim was still held and the job transitioned.
        """
        now = now or utcnow()
        moved = await self._finalize(
            job_id,
            attempt,
            status=JobStatus.DEAD_LETTER,
            last_error=error_code,
            last_error_detail=format_error_detail(error_detail),
            dead_lettered_at=now,
            claimed_at=None,
            updated_at=now,
        )
        if moved:
            logger.warning(
                f"Job moved to dead letter after {attempt} attempts",
                extra={"job_id": str(job_id), "error": error_code, "detail": error_detail},
            )
        return moved

    async def list_dead_letter(
        self,
        tenant_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[QueueJob]:
        """
        List dead-lettered jobs, most recently dead-lettered first.

        Args:
            tenant_id: Optional tenant filter.
            limit: Maximum number of jobs to return.
            offset: Offset for pagination.

        Returns:
            The page of jobs.
        """
        filters = [QueueJob.status == JobStatus.DEAD_LETTER]
        if tenant_id is not None:
            filters.append(QueueJob.tenant_id == tenant_id)

        stmt = (
            select(QueueJob)
            .where(and_(*filters))
            .order_by(QueueJob.dead_lettered_at.desc(), QueueJob.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def requeue_dead_letter(
        self,
        job_id: UUID,
        now: datetime | None = None,
    ) -> bool:
        """
        Return a dead-lettered job to PENDING with a fresh attempt budget.

        Args:
            job_id: The job UUID.
            now: Requeue time; the job becomes due immediately.

        Returns:
            True if the job existed and was dead-lettered.
        """
        now = now or utcnow()
        stmt = (
            update(QueueJob)
            .where(
                and_(
                    QueueJob.id == job_id,
                    QueueJob.status == JobStatus.DEAD_LETTER,
                )
            )
            .values(
                status=JobStatus.PENDING,
                attempt_count=0,
                last_error=None,
                last_error_detail=None,
                dead_lettered_at=None,
                processed_at=None,
                claimed_at=None,
                next_attempt_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        result = await self._session.execute(stmt)
        requeued = result.rowcount > 0

        if requeued:
            logger.info("Job requeued from dead letter", extra={"job_id": str(job_id)})

        return requeued

    async def schedule_now(
        self,
        job_id: UUID,
        now: datetime | None = None,
    ) -> bool:
        """
        Make a job due immediately without touching its status or attempts.

        Args:
            job_id: The job UUID.
            now: The new next_attempt_at.

        Returns:
            True if the job exists.
        """
        now = now or utcnow()
        stmt = (
            update(QueueJob)
            .where(QueueJob.id == job_id)
            .values(next_attempt_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def recover_stale_claims(
        self,
        grace_seconds: float,
        now: datetime | None = None,
    ) -> tuple[int, int]:
        """
        Recover jobs stuck in PROCESSING past the grace period.

        This is called by the reaper to handle dispatchers that died mid-batch.
        The abandoned attempt was already counted when the job was claimed, so
        jobs with no attempts left go to DEAD_LETTER and the rest go back to
        PENDING, due immediately.

        Args:
            grace_seconds: How long a claim may be held.
            now: Sweep time.

        Returns:
            Tuple of (requeued, dead_lettered) counts.
        """
        now = now or utcnow()
        cutoff = now - timedelta(seconds=grace_seconds)
        detail = f"claim held longer than {grace_seconds:g}s"
        stale = and_(
            QueueJob.status == JobStatus.PROCESSING,
            QueueJob.claimed_at < cutoff,
        )

        exhausted = await self._session.execute(
            update(QueueJob)
            .where(and_(stale, QueueJob.attempt_count >= QueueJob.max_attempts))
            .values(
                status=JobStatus.DEAD_LETTER,
                last_error=ERROR_STALE_CLAIM,
                last_error_detail=detail,
                dead_lettered_at=now,
                claimed_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        requeued = await self._session.execute(
            update(QueueJob)
            .where(stale)
            .values(
                status=JobStatus.PENDING,
                last_error=ERROR_STALE_CLAIM,
                last_error_detail=detail,
                next_attempt_at=now,
                claimed_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        counts = (requeued.rowcount, exhausted.rowcount)
        if any(counts):
            logger.info(
                f"Recovered {counts[0]} stale claims, dead-lettered {counts[1]}",
                extra={"requeued": counts[0], "dead_lettered": counts[1]},
            )
        return counts

    async def count_pending_ready(
        self,
        tenant_id: str | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Get the number of pending jobs that are due.

        Args:
            tenant_id: Optional tenant filter.
            now: Reference time.

        Returns:
            Number of claimable jobs.
        """
        filters = [
            QueueJob.status == JobStatus.PENDING,
            QueueJob.next_attempt_at <= (now or utcnow()),
        ]
        if tenant_id is not None:
            filters.append(QueueJob.tenant_id == tenant_id)

        stmt = select(func.count()).select_from(QueueJob).where(and_(*filters))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def get_job_stats(
        self,
        tenant_id: str | None = None,
    ) -> dict[str, int]:
        """
        Get job statistics by status.

        Args:
            tenant_id: Optional tenant filter.

        Returns:
            Dictionary of status -> count, with every status present.
        """
        stmt = select(QueueJob.status, func.count()).group_by(QueueJob.status)
        if tenant_id is not None:
            stmt = stmt.where(QueueJob.tenant_id == tenant_id)

        result = await self._session.execute(stmt)
        stats = {status.value: 0 for status in JobStatus}
        for status, count in result.all():
            stats[JobStatus(status).value] = count
        return stats

    async def ping(self) -> None:
        """Touch the queue table. Raises if the store is unreachable."""
        await self._session.execute(select(QueueJob.id).limit(1))
