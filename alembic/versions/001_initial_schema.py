"""Initial schema: ingestion queue, dedup ledger and CRM tables

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE ingestion_job_status AS ENUM ('pending', 'processing', 'succeeded', 'dead_letter');
        EXCEPTION
            WHEN duplicate_object THEN null;
        END $$;
    """)

    op.create_table(
        "ingestion_queue_jobs",
        sa.Column("id", sa.Uuid, nullable=False),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("tenant_slug", sa.String(255), nullable=True),
        sa.Column("tenant_domain", sa.String(255), nullable=True),
        sa.Column("event_type", sa.String(128), nullable=False),
        sa.Column("event_version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("occurred_at", sa.DateTime, nullable=False),
        sa.Column("payload", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("dedup_key", sa.String(64), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(
                "pending", "processing", "succeeded", "dead_letter",
                name="ingestion_job_status",
                create_type=False,
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("attempt_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer, nullable=False, server_default="5"),
        sa.Column("last_error", sa.String(32), nullable=True),
        sa.Column("last_error_detail", sa.Text, nullable=True),
        sa.Column("next_attempt_at", sa.DateTime, nullable=False),
        sa.Column("claimed_at", sa.DateTime, nullable=True),
        sa.Column("processed_at", sa.DateTime, nullable=True),
        sa.Column("dead_lettered_at", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dedup_key", name="uq_ingestion_queue_jobs_dedup_key"),
    )
    op.create_index(
        "ix_ingestion_queue_jobs_status_next_attempt",
        "ingestion_queue_jobs",
        ["status", "next_attempt_at"],
    )
    op.create_index(
        "ix_ingestion_queue_jobs_tenant_status",
        "ingestion_queue_jobs",
        ["tenant_id", "status"],
    )
    op.create_index(
        "ix_ingestion_queue_jobs_status_claimed",
        "ingestion_queue_jobs",
        ["status", "claimed_at"],
    )

    op.create_table(
        "ingestion_dedup_ledger",
        sa.Column("dedup_key", sa.String(64), nullable=False),
        sa.Column("job_id", sa.Uuid, nullable=False),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("dedup_key"),
        sa.ForeignKeyConstraint(["job_id"], ["ingestion_queue_jobs.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("job_id"),
    )
    op.create_index("ix_ingestion_dedup_ledger_tenant_id", "ingestion_dedup_ledger", ["tenant_id"])

    op.create_table(
        "crm_contacts",
        sa.Column("id", sa.Uuid, nullable=False),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("email_normalized", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("phone_normalized", sa.String(32), nullable=True),
        sa.Column("source", sa.String(128), nullable=False, server_default="website"),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email_normalized", name="uq_crm_contacts_tenant_email"),
        sa.UniqueConstraint("tenant_id", "phone_normalized", name="uq_crm_contacts_tenant_phone"),
    )
    op.create_index("ix_crm_contacts_tenant_id", "crm_contacts", ["tenant_id"])

    op.create_table(
        "crm_leads",
        sa.Column("id", sa.Uuid, nullable=False),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("contact_id", sa.Uuid, nullable=True),
        sa.Column("source_job_id", sa.Uuid, nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="new"),
        sa.Column("lead_type", sa.String(32), nullable=False),
        sa.Column("source", sa.String(128), nullable=False),
        sa.Column("timeframe", sa.String(128), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("listing_id", sa.String(255), nullable=True),
        sa.Column("listing_url", sa.Text, nullable=True),
        sa.Column("listing_address", sa.Text, nullable=True),
        sa.Column("property_type", sa.String(64), nullable=True),
        sa.Column("beds", sa.Integer, nullable=True),
        sa.Column("baths", sa.Float, nullable=True),
        sa.Column("sqft", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["contact_id"], ["crm_contacts.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("source_job_id"),
    )
    op.create_index("ix_crm_leads_tenant_id", "crm_leads", ["tenant_id"])

    op.create_table(
        "crm_activities",
        sa.Column("id", sa.Uuid, nullable=False),
        sa.Column("tenant_id", sa.String(255), nullable=False),
        sa.Column("contact_id", sa.Uuid, nullable=True),
        sa.Column("lead_id", sa.Uuid, nullable=True),
        sa.Column("source_job_id", sa.Uuid, nullable=True),
        sa.Column("activity_type", sa.String(64), nullable=False),
        sa.Column("occurred_at", sa.DateTime, nullable=False),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("metadata_json", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["contact_id"], ["crm_contacts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["lead_id"], ["crm_leads.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("source_job_id"),
    )
    op.create_index("ix_crm_activities_tenant_id", "crm_activities", ["tenant_id"])


def downgrade() -> None:
    op.drop_index("ix_crm_activities_tenant_id")
    op.drop_table("crm_activities")
    op.drop_index("ix_crm_leads_tenant_id")
    op.drop_table("crm_leads")
    op.drop_index("ix_crm_contacts_tenant_id")
    op.drop_table("crm_contacts")
    op.drop_index("ix_ingestion_dedup_ledger_tenant_id")
    op.drop_table("ingestion_dedup_ledger")
    op.drop_index("ix_ingestion_queue_jobs_status_claimed")
    op.drop_index("ix_ingestion_queue_jobs_tenant_status")
    op.drop_index("ix_ingestion_queue_jobs_status_next_attempt")
    op.drop_table("ingestion_queue_jobs")

    op.execute("DROP TYPE IF EXISTS ingestion_job_status")
