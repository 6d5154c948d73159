"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ingest_queue.constants import (
    METRIC_CLAIMS_LOST,
    METRIC_DEAD_LETTER_REQUEUED,
    METRIC_EVENTS_ENQUEUED,
    METRIC_HANDLER_DURATION,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_FINALIZED,
    METRIC_QUEUE_DEPTH,
    METRIC_STALE_CLAIMS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the ingestion queue.

    Collects metrics for:
    - Queue depth by status
    - Event submissions (accepted vs duplicate)
    - Job outcomes and handler duration
    - Claims, stale claim recovery and dead-letter requeues
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of queue jobs by status",
            ["status"],
            registry=self._registry,
        )

        self.events_enqueued = Counter(
            METRIC_EVENTS_ENQUEUED,
            "Total number of submitted events",
            ["tenant_id", "event_type", "outcome"],
            registry=self._registry,
        )

        self.jobs_finalized = Counter(
            METRIC_JOBS_FINALIZED,
            "Total number of finished attempts by outcome",
            ["tenant_id", "outcome"],
            registry=self._registry,
        )

        self.handler_duration = Histogram(
            METRIC_HANDLER_DURATION,
            "Handler execution duration in seconds",
            ["event_type", "outcome"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of jobs claimed by dispatchers",
            registry=self._registry,
        )

        self.stale_claims = Counter(
            METRIC_STALE_CLAIMS,
            "Total number of stale claims recovered",
            ["outcome"],
            registry=self._registry,
        )

        self.dead_letter_requeued = Counter(
            METRIC_DEAD_LETTER_REQUEUED,
            "Total number of jobs requeued from dead letter",
            registry=self._registry,
        )

        self.claims_lost = Counter(
            METRIC_CLAIMS_LOST,
            "Attempts whose result was discarded because the claim had been recovered",
            ["tenant_id"],
            registry=self._registry,
        )

    def record_enqueue(self, tenant_id: str, event_type: str, duplicate: bool) -> None:
        """Record an event submission."""
        outcome = "duplicate" if duplicate else "accepted"
        self.events_enqueued.labels(
            tenant_id=tenant_id, event_type=event_type, outcome=outcome
        ).inc()

    def record_job_finalized(
        self,
        tenant_id: str,
        event_type: str,
        outcome: str,
        duration_seconds: float,
    ) -> None:
        """Record the outcome of one attempt."""
        self.jobs_finalized.labels(tenant_id=tenant_id, outcome=outcome).inc()
        self.handler_duration.labels(event_type=event_type, outcome=outcome).observe(
            duration_seconds
        )

    def record_claim_lost(self, tenant_id: str) -> None:
        """Record an attempt that finished after its claim was recovered."""
        self.claims_lost.labels(tenant_id=tenant_id).inc()

    def record_claimed(self, count: int) -> None:
        """Record claimed jobs."""
        if count:
            self.jobs_claimed.inc(count)

    def record_stale_claims(self, requeued: int, dead_lettered: int) -> None:
        """Record a stale claim sweep."""
        if requeued:
            self.stale_claims.labels(outcome="requeued").inc(requeued)
        if dead_lettered:
            self.stale_claims.labels(outcome="dead_letter").inc(dead_lettered)

    def record_requeued(self, count: int = 1) -> None:
        """Record dead-letter requeues."""
        if count:
            self.dead_letter_requeued.inc(count)

    def update_queue_depth(self, by_status: dict[str, int]) -> None:
        """Update queue depth gauges from a status -> count mapping."""
        for status, count in by_status.items():
            self.queue_depth.labels(status=status).set(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
