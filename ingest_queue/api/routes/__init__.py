"""
API routes module.
"""

from ingest_queue.api.routes.dead_letter import router as dead_letter_router
from ingest_queue.api.routes.events import router as events_router
from ingest_queue.api.routes.health import router as health_router
from ingest_queue.api.routes.jobs import router as jobs_router
from ingest_queue.api.routes.queue import router as queue_router
from ingest_queue.api.routes.tenants import router as tenants_router

__all__ = [
    "health_router",
    "events_router",
    "queue_router",
    "dead_letter_router",
    "jobs_router",
    "tenants_router",
]
