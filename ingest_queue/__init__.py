"""
Website Event Ingestion Queue

Accepts website event envelopes, deduplicates resubmissions, and turns them into
tenant CRM records through a durable queue with bounded retries, exponential
backoff, and an operator-facing dead-letter store.
"""

__version__ = "1.0.0"
