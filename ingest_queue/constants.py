"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Queue job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (claimed by a dispatcher)
    - PROCESSING -> SUCCEEDED (handler succeeded)
    - PROCESSING -> PENDING (handler failed, backed off for retry)
    - PROCESSING -> DEAD_LETTER (attempts exhausted or permanent failure)
    - PROCESSING -> PENDING (stale claim recovered by the reaper)
    - DEAD_LETTER -> PENDING (operator requeue)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    DEAD_LETTER = "dead_letter"


class EventType(StrEnum):
    """Website event types produced by the public web properties."""

    LEAD_SUBMITTED = "website.lead.submitted"
    VALUATION_REQUESTED = "website.valuation.requested"
    SEARCH_PERFORMED = "website.search.performed"
    LISTING_VIEWED = "website.listing.viewed"
    LISTING_FAVORITED = "website.listing.favorited"
    LISTING_UNFAVORITED = "website.listing.unfavorited"


# Default values
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 500
CURRENT_EVENT_VERSION = 1
LAST_ERROR_MAX_LENGTH = 2000

# Failure codes stored in last_error; the description goes to last_error_detail
ERROR_INVALID_PAYLOAD = "invalid_payload"
ERROR_INGESTION_FAILED = "ingestion_failed"
ERROR_HANDLER_TIMEOUT = "handler_timeout"
ERROR_STALE_CLAIM = "stale_claim"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "ingestion_queue_depth"
METRIC_EVENTS_ENQUEUED = "ingestion_events_enqueued_total"
METRIC_JOBS_FINALIZED = "ingestion_jobs_finalized_total"
METRIC_HANDLER_DURATION = "ingestion_handler_duration_seconds"
METRIC_JOBS_CLAIMED = "ingestion_jobs_claimed_total"
METRIC_STALE_CLAIMS = "ingestion_stale_claims_recovered_total"
METRIC_DEAD_LETTER_REQUEUED = "ingestion_dead_letter_requeued_total"
METRIC_CLAIMS_LOST = "ingestion_claims_lost_total"

# Trace span names
SPAN_ENQUEUE = "enqueue_event"
SPAN_CLAIM_BATCH = "claim_batch"
SPAN_EXECUTE_HANDLER = "execute_handler"
SPAN_REQUEUE_DEAD_LETTER = "requeue_dead_letter"
SPAN_RECOVER_STALE = "recover_stale_claims"
