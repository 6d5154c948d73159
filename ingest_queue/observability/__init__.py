"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from ingest_queue.observability.logging import (
    job_log_context,
    setup_logging,
)
from ingest_queue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from ingest_queue.observability.tracing import get_tracer, setup_tracing, start_span

__all__ = [
    "setup_logging",
    "job_log_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "start_span",
]
