"""
Session helper shared by the queue operations.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import InterfaceError, OperationalError

from ingest_queue.db import get_session_context
from ingest_queue.db.repository import QueueRepository
from ingest_queue.errors import StoreUnavailableError


@asynccontextmanager
async def queue_repository() -> AsyncGenerator[QueueRepository]:
    """
    Yield a QueueRepository bound to a fresh transaction.

    Connection-level failures are raised as StoreUnavailableError so callers
    can tell an outage from a bug.
    """
    try:
        async with get_session_context() as session:
            yield QueueRepository(session)
    except (OperationalError, InterfaceError, OSError) as e:
        raise StoreUnavailableError(f"Queue store unavailable: {e}") from e
