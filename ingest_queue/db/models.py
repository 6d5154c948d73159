"""
SQLAlchemy database models.
Defines the ingestion queue tables and the CRM read model the handlers write to.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ingest_queue.clock import utcnow
from ingest_queue.constants import DEFAULT_MAX_ATTEMPTS, JobStatus

# JSONB on PostgreSQL, plain JSON elsewhere
JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class QueueJob(Base):
    """
    A website event waiting for, undergoing, or done with CRM ingestion.

    This is the authoritative source of truth for job state. All lifecycle
    transitions are conditional updates issued by the repository.

    Key constraints:
    - dedup_key is unique: one job per logical event
    - only PENDING jobs with next_attempt_at <= now are claimable
    - claimed_at + attempt_count fence finalization of a PROCESSING claim
    """

    __tablename__ = "ingestion_queue_jobs"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Envelope
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_slug: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tenant_domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    event_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    payload: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)
    dedup_key: Mapped[str] = mapped_column(String(64), nullable=False)

    status: Mapped[JobStatus] = mapped_column(
        Enum(
            JobStatus,
            name="ingestion_job_status",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=JobStatus.PENDING,
    )

    # Retry tracking
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_MAX_ATTEMPTS,
    )
    # One of the failure codes in constants; the free-text reason is kept apart
    last_error: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_error_detail: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scheduling
    next_attempt_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Timestamps
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    dead_lettered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("dedup_key", name="uq_ingestion_queue_jobs_dedup_key"),
        # Claiming: pending jobs by due time
        Index("ix_ingestion_queue_jobs_status_next_attempt", "status", "next_attempt_at"),
        # Dead-letter listing and tenant stats
        Index("ix_ingestion_queue_jobs_tenant_status", "tenant_id", "status"),
        # Stale claim sweep
        Index("ix_ingestion_queue_jobs_status_claimed", "status", "claimed_at"),
    )

    @property
    def is_retryable(self) -> bool:
        """Check if another attempt is allowed."""
        return self.attempt_count < self.max_attempts

    def __repr__(self) -> str:
        return (
            f"QueueJob(id={self.id}, tenant={self.tenant_id}, type={self.event_type}, "
            f"status={self.status}, attempt={self.attempt_count}/{self.max_attempts})"
        )


class DedupLedgerEntry(Base):
    """
    Maps an envelope fingerprint to the job it produced.

    Written in the same transaction as the job insert and never updated.
    """

    __tablename__ = "ingestion_dedup_ledger"

    dedup_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ingestion_queue_jobs.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


# ============================================================================
# CRM read model (written by the CRM handlers, read by the summary reporter)
# ============================================================================


class Contact(Base):
    """A person known to a tenant's CRM."""

    __tablename__ = "crm_contacts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    email_normalized: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone_normalized: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source: Mapped[str] = mapped_column(String(128), nullable=False, default="website")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "email_normalized", name="uq_crm_contacts_tenant_email"),
        UniqueConstraint("tenant_id", "phone_normalized", name="uq_crm_contacts_tenant_phone"),
    )


class Lead(Base):
    """A sales opportunity, optionally tied to a contact."""

    __tablename__ = "crm_leads"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_contacts.id", ondelete="SET NULL"), nullable=True
    )
    # The queue job that produced this lead; makes handler retries idempotent
    source_job_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, unique=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="new")
    lead_type: Mapped[str] = mapped_column(String(32), nullable=False)
    source: Mapped[str] = mapped_column(String(128), nullable=False)
    timeframe: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    listing_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    listing_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    listing_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    property_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    beds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    baths: Mapped[float | None] = mapped_column(Float, nullable=True)
    sqft: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class Activity(Base):
    """A timeline entry recorded against a contact and/or lead."""

    __tablename__ = "crm_activities"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_contacts.id", ondelete="SET NULL"), nullable=True
    )
    lead_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_leads.id", ondelete="SET NULL"), nullable=True
    )
    source_job_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, unique=True)
    activity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
