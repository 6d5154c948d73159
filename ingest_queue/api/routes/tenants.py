"""
Tenant reporting routes.
"""

from fastapi import APIRouter

from ingest_queue.constants import API_V1_PREFIX
from ingest_queue.queue.reporting import get_queue_stats, get_tenant_summary
from ingest_queue.types.queue import QueueStats, TenantSummary

router = APIRouter(prefix=f"{API_V1_PREFIX}/tenants", tags=["Tenants"])


@router.get(
    "/{tenant_id}/summary",
    response_model=TenantSummary,
    summary="CRM record counts for a tenant",
)
async def tenant_summary(tenant_id: str) -> TenantSummary:
    return await get_tenant_summary(tenant_id)


@router.get(
    "/{tenant_id}/stats",
    response_model=QueueStats,
    summary="Queue job counts for a tenant",
)
async def tenant_queue_stats(tenant_id: str) -> QueueStats:
    return await get_queue_stats(tenant_id)
