"""
Readiness and reporting over the queue store and the CRM read model.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from ingest_queue.db import get_session_context
from ingest_queue.db.crm import CrmRepository
from ingest_queue.db.repository import QueueRepository
from ingest_queue.errors import StoreUnavailableError
from ingest_queue.observability.metrics import get_metrics
from ingest_queue.queue.store import queue_repository
from ingest_queue.types.queue import QueueStats, Readiness, TenantSummary

logger = logging.getLogger(__name__)


async def check_readiness() -> Readiness:
    """
    Check that the queue table can be queried.

    Never raises; an unreachable or uninitialized store is reported as not
    ready with the reason in the message.
    """
    try:
        async with get_session_context() as session:
            await QueueRepository(session).ping()
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.warning("Queue store not ready", extra={"error": str(e)})
        return Readiness(ready=False, message=f"Queue store unavailable: {e}")

    return Readiness(ready=True, message="Queue store reachable")


async def ensure_ready() -> None:
    """
    Raise unless the queue store is ready.

    Raises:
        StoreUnavailableError: If the readiness check fails.
    """
    readiness = await check_readiness()
    if not readiness.ready:
        raise StoreUnavailableError(readiness.message)


async def get_tenant_summary(tenant_id: str) -> TenantSummary:
    """
    Count the CRM records owned by a tenant.

    Raises:
        StoreUnavailableError: If the store cannot be queried.
    """
    try:
        async with get_session_context() as session:
            return await CrmRepository(session).get_tenant_summary(tenant_id)
    except (SQLAlchemyError, OSError) as e:
        raise StoreUnavailableError(f"Could not read CRM summary: {e}") from e


async def get_queue_stats(tenant_id: str | None = None) -> QueueStats:
    """Job counts by status plus the number of jobs due now."""
    async with queue_repository() as repo:
        by_status = await repo.get_job_stats(tenant_id)
        pending_ready = await repo.count_pending_ready(tenant_id)

    if tenant_id is None:
        get_metrics().update_queue_depth(by_status)

    return QueueStats(
        tenant_id=tenant_id,
        by_status=by_status,
        pending_ready_count=pending_ready,
    )
