"""
Pytest configuration and shared fixtures.

Tests run against a throwaway SQLite file by default. Set TEST_DATABASE_URL
to a postgresql+asyncpg URL to run the same suite against PostgreSQL.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

# Settings are cached on first use, so the environment must be set first
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ingest_queue.api.main import create_app
from ingest_queue.config import Settings
from ingest_queue.db import close_db, create_engine_for_url, create_schema, init_db
from ingest_queue.db import connection
from ingest_queue.db.models import Base
from ingest_queue.handlers import HandlerRegistry
from ingest_queue.queue.backoff import BackoffPolicy
from ingest_queue.queue.dispatcher import BatchDispatcher

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture
def database_url(tmp_path) -> str:
    """Get the test database URL."""
    return TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'ingest_queue.db'}"


@pytest_asyncio.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Bind the queue to a fresh schema for the duration of one test."""
    engine = create_engine_for_url(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await init_db(engine)
    await create_schema()

    yield engine

    await close_db()


@pytest_asyncio.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """
    A session for repository tests.

    Do not hold it open while calling queue operations: on SQLite they would
    wait on its write lock.
    """
    async with connection.AsyncSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    """Create test settings."""
    return Settings(
        database_url=database_url,
        log_level="DEBUG",
        log_format="console",
        tracing_enabled=False,
        queue_max_attempts=3,
        queue_batch_size=10,
        dispatcher_concurrency=4,
        dispatcher_handler_timeout_seconds=2.0,
        worker_poll_interval_seconds=0.05,
        worker_max_loops=5,
        recovery_grace_seconds=60,
        reaper_interval_seconds=1,
    )


@pytest.fixture
def registry() -> HandlerRegistry:
    """An empty handler registry, so tests control every handler."""
    return HandlerRegistry()


@pytest.fixture
def backoff() -> BackoffPolicy:
    """Backoff with no jitter so next_attempt_at is predictable."""
    return BackoffPolicy(
        base_delay_seconds=30.0,
        multiplier=2.0,
        max_delay_seconds=3600.0,
        jitter_ratio=0.0,
    )


@pytest.fixture
def dispatcher(
    async_engine: AsyncEngine,
    registry: HandlerRegistry,
    test_settings: Settings,
    backoff: BackoffPolicy,
) -> BatchDispatcher:
    """Dispatcher wired to the test registry."""
    return BatchDispatcher(registry=registry, settings=test_settings, backoff=backoff)


@pytest_asyncio.fixture
async def app(async_engine: AsyncEngine) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app bound to the test database."""
    yield create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def test_tenant_id() -> str:
    """Generate a test tenant ID."""
    return f"test-tenant-{uuid4().hex[:8]}"


@pytest.fixture
def make_envelope(test_tenant_id: str) -> Callable[..., dict[str, Any]]:
    """Build producer-shaped envelopes; every call is unique unless told otherwise."""

    def _make(
        event_type: str = "test.event",
        payload: dict[str, Any] | None = None,
        tenant_id: str | None = None,
        occurred_at: str | None = None,
    ) -> dict[str, Any]:
        return {
            "eventType": event_type,
            "version": 1,
            "occurredAt": occurred_at or datetime.now(UTC).isoformat(),
            "tenant": {
                "tenantId": tenant_id or test_tenant_id,
                "tenantSlug": "test-tenant",
                "tenantDomain": "test.example.com",
            },
            "payload": payload if payload is not None else {"nonce": uuid4().hex},
        }

    return _make


@pytest.fixture
def lead_payload() -> dict[str, Any]:
    """A website.lead.submitted payload in front-end shape."""
    suffix = uuid4().hex[:8]
    return {
        "source": "website",
        "contact": {
            "name": "Jordan Example",
            "email": f"  Jordan.{suffix}@Example.com ",
            "phone": "(555) 010-2030",
        },
        "timeframe": "0-3 months",
        "message": "Interested in a showing",
        "listing": {
            "id": f"listing-{suffix}",
            "url": f"https://test.example.com/listings/{suffix}",
            "address": "12 Harbor Rd",
        },
        "propertyDetails": {
            "propertyType": "single_family",
            "beds": 3,
            "baths": 2.5,
            "sqft": 1850,
        },
    }


@pytest.fixture
def valuation_payload() -> dict[str, Any]:
    """A website.valuation.requested payload in front-end shape."""
    return {
        "address": f"{uuid4().hex[:4]} Elm St",
        "propertyType": "condo",
        "beds": 2,
        "baths": 1,
        "sqft": 900,
    }
