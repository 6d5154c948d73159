"""
Exception types raised by the ingestion queue.
"""

from typing import Any

from ingest_queue.constants import LAST_ERROR_MAX_LENGTH


class IngestQueueError(Exception):
    """Base exception for ingestion queue errors."""


class EnvelopeValidationError(IngestQueueError):
    """The submitted envelope is malformed. Raised before any store write."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class StoreUnavailableError(IngestQueueError):
    """The queue store cannot be reached; enqueue and dispatch must not proceed."""


class HandlerError(IngestQueueError):
    """A handler failed in a way that is worth retrying."""


class PermanentHandlerError(HandlerError):
    """A handler failed in a way that no retry can fix. The job is dead-lettered."""


class BatchIncompleteError(IngestQueueError):
    """
    Some claimed jobs in a batch could not be finalized.

    They stay in processing until the reaper recovers them. `result` holds the
    accounting for the whole batch, with those jobs in unfinalized_count.
    """

    def __init__(self, message: str, result: Any, errors: list[BaseException]):
        super().__init__(message)
        self.result = result
        self.errors = errors


def format_error_detail(detail: str | None, max_length: int = LAST_ERROR_MAX_LENGTH) -> str | None:
    """Trim a failure description to what last_error_detail stores. Empty becomes None."""
    if not detail:
        return None
    return detail[:max_length]
