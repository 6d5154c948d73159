"""
Unit tests for the handler registry.
"""

import asyncio
from datetime import datetime
from uuid import uuid4

import pytest

from ingest_queue.constants import EventType
from ingest_queue.errors import HandlerError, PermanentHandlerError
from ingest_queue.handlers import HandlerRegistry, get_handler, list_handlers
from ingest_queue.types.envelope import TenantRef
from ingest_queue.types.job import JobContext, JobResult


@pytest.fixture
def context() -> JobContext:
    return JobContext(
        job_id=uuid4(),
        event_type="test.event",
        event_version=1,
        occurred_at=datetime(2026, 1, 1),
        tenant=TenantRef(tenant_id="tenant-a"),
        payload={"value": 1},
        attempt=1,
        max_attempts=3,
    )


class TestRegistration:
    """Tests for handler registration."""

    def test_register_and_get(self, registry: HandlerRegistry):
        @registry.register("test.event")
        async def handler(context: JobContext) -> JobResult:
            return JobResult(success=True)

        assert registry.get("test.event") is handler
        assert "test.event" in registry
        assert registry.event_types() == ["test.event"]

    def test_unknown_type(self, registry: HandlerRegistry):
        assert registry.get("missing") is None
        assert "missing" not in registry

    def test_default_registry_covers_website_events(self):
        for event_type in EventType:
            assert get_handler(event_type) is not None
        assert set(list_handlers()) >= {str(event_type) for event_type in EventType}


class TestExecute:
    """Tests for HandlerRegistry.execute failure classification."""

    async def test_success(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            return JobResult(success=True, output={"seen": ctx.payload["value"]})

        result = await registry.execute(context)

        assert result.success is True
        assert result.output == {"seen": 1}

    async def test_none_means_success(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> None:
            return None

        result = await registry.execute(context)

        assert result.success is True

    async def test_missing_handler_is_permanent(
        self, registry: HandlerRegistry, context: JobContext
    ):
        result = await registry.execute(context)

        assert result.success is False
        assert result.retryable is False
        assert result.error_code == "invalid_payload"
        assert "test.event" in result.error

    async def test_exception_is_transient(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            raise HandlerError("crm write failed")

        result = await registry.execute(context)

        assert result.success is False
        assert result.retryable is True
        assert result.error_code == "ingestion_failed"
        assert result.error == "HandlerError: crm write failed"

    async def test_validation_error_is_transient(
        self, registry: HandlerRegistry, context: JobContext
    ):
        from ingest_queue.types.payloads import ValuationRequestedPayload

        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            ValuationRequestedPayload.model_validate(ctx.payload)
            return JobResult(success=True)

        result = await registry.execute(context)

        assert result.retryable is True
        assert result.error_code == "ingestion_failed"
        assert result.error.startswith("ValidationError")

    async def test_permanent_error(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            raise PermanentHandlerError("listing does not exist")

        result = await registry.execute(context)

        assert result.retryable is False
        assert result.error_code == "invalid_payload"
        assert result.error == "listing does not exist"

    async def test_timeout(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            await asyncio.sleep(5)
            return JobResult(success=True)

        result = await registry.execute(context, timeout=0.05)

        assert result.success is False
        assert result.retryable is True
        assert result.error_code == "handler_timeout"
        assert result.error == "handler exceeded 0.05s"

    async def test_failed_result_gets_code(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            return JobResult(success=False, error="upstream busy")

        result = await registry.execute(context)

        assert result.error_code == "ingestion_failed"
        assert result.error == "upstream busy"

    async def test_non_retryable_result(self, registry: HandlerRegistry, context: JobContext):
        @registry.register("test.event")
        async def handler(ctx: JobContext) -> JobResult:
            return JobResult(success=False, error="bad listing id", retryable=False)

        result = await registry.execute(context)

        assert result.retryable is False
        assert result.error_code == "invalid_payload"
        assert result.error == "bad listing id"


class TestJobContext:
    """Tests for JobContext helpers."""

    def test_attempt_bookkeeping(self, context: JobContext):
        assert context.tenant_id == "tenant-a"
        assert context.remaining_attempts == 2
        assert context.is_last_attempt is False

        context.attempt = 3
        assert context.is_last_attempt is True
        assert context.remaining_attempts == 0
