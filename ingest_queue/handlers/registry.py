"""
Event type to handler registry.

Handlers must be idempotent: a job may be attempted more than once, for
example when a dispatcher dies after the handler committed but before the
job was finalized.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator

from ingest_queue.constants import (
    ERROR_HANDLER_TIMEOUT,
    ERROR_INGESTION_FAILED,
    ERROR_INVALID_PAYLOAD,
)
from ingest_queue.errors import PermanentHandlerError, format_error_detail
from ingest_queue.types.job import JobContext, JobResult

logger = logging.getLogger(__name__)

# Type alias for handler functions. Returning None means success.
EventHandler = Callable[[JobContext], Awaitable[JobResult | None]]


class HandlerRegistry:
    """Maps event types to handlers and runs them with failure classification."""

    def __init__(self) -> None:
        self._handlers: dict[str, EventHandler] = {}

    def register(self, event_type: str) -> Callable[[EventHandler], EventHandler]:
        """
        Decorator to register a handler for an event type.

        Args:
            event_type: The event type this handler processes.

        Returns:
            Decorator function.

        Example:
            @registry.register("website.lead.submitted")
            async def handle_lead(context: JobContext) -> JobResult:
                ...
        """

        def decorator(handler: EventHandler) -> EventHandler:
            self._handlers[str(event_type)] = handler
            logger.debug(f"Registered handler for event type: {event_type}")
            return handler

        return decorator

    def get(self, event_type: str) -> EventHandler | None:
        return self._handlers.get(event_type)

    def event_types(self) -> list[str]:
        return list(self._handlers)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    async def execute(self, context: JobContext, timeout: float | None = None) -> JobResult:
        """
        Run the handler registered for a job's event type.

        Never raises for handler failures. A failure comes back as a JobResult
        with error_code set from the table below and the reason in error:

        - no handler registered, PermanentHandlerError, or a handler result
          with retryable=False: invalid_payload, not retryable
        - timeout: handler_timeout, retryable
        - any other exception or failed result: ingestion_failed, retryable

        Args:
            context: The job context.
            timeout: Seconds the handler may run. None means no limit.

        Returns:
            The classified result.
        """
        handler = self.get(context.event_type)
        if handler is None:
            logger.error(
                f"No handler for event type: {context.event_type}",
                extra={"job_id": str(context.job_id)},
            )
            return JobResult(
                success=False,
                error=f"no handler registered for event type {context.event_type!r}",
                error_code=ERROR_INVALID_PAYLOAD,
                retryable=False,
            )

        try:
            result = await asyncio.wait_for(handler(context), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Handler timed out",
                extra={"job_id": str(context.job_id), "timeout": timeout},
            )
            return JobResult(
                success=False,
                error=f"handler exceeded {timeout}s",
                error_code=ERROR_HANDLER_TIMEOUT,
            )
        except PermanentHandlerError as e:
            logger.warning(
                "Handler rejected job permanently",
                extra={"job_id": str(context.job_id), "error": str(e)},
            )
            return JobResult(
                success=False,
                error=format_error_detail(str(e)),
                error_code=ERROR_INVALID_PAYLOAD,
                retryable=False,
            )
        except Exception as e:
            logger.exception(
                "Handler raised exception",
                extra={"job_id": str(context.job_id), "error": str(e)},
            )
            return JobResult(
                success=False,
                error=format_error_detail(f"{type(e).__name__}: {e}"),
                error_code=ERROR_INGESTION_FAILED,
            )

        if result is None:
            return JobResult(success=True)
        if result.success:
            return result

        code = ERROR_INGESTION_FAILED if result.retryable else ERROR_INVALID_PAYLOAD
        return result.model_copy(
            update={
                "error": format_error_detail(result.error or "handler reported failure"),
                "error_code": code,
            }
        )


# Registry used by the dispatcher unless another one is supplied
default_registry = HandlerRegistry()


def register_handler(event_type: str) -> Callable[[EventHandler], EventHandler]:
    """Register a handler on the default registry."""
    return default_registry.register(event_type)


def get_handler(event_type: str) -> EventHandler | None:
    """Get a handler from the default registry."""
    return default_registry.get(event_type)


def list_handlers() -> list[str]:
    """List event types with a handler on the default registry."""
    return default_registry.event_types()
