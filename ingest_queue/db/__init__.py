"""
Database module.
Contains database connection, models, and repository implementations.
"""

from ingest_queue.db.connection import (
    close_db,
    create_engine_for_url,
    create_schema,
    get_engine,
    get_session_context,
    init_db,
)
from ingest_queue.db.models import Activity, Base, Contact, DedupLedgerEntry, Lead, QueueJob

__all__ = [
    "get_session_context",
    "get_engine",
    "create_engine_for_url",
    "create_schema",
    "init_db",
    "close_db",
    "QueueJob",
    "DedupLedgerEntry",
    "Contact",
    "Lead",
    "Activity",
    "Base",
]
