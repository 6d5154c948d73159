"""
Integration tests for the API endpoints.
"""

from uuid import uuid4

from httpx import AsyncClient

from ingest_queue.constants import EventType
from ingest_queue.db import close_db
from ingest_queue.db.repository import QueueRepository


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Test the health check endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert "version" in data

    async def test_readiness_check(self, client: AsyncClient):
        """Test the readiness check endpoint."""
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is True

    async def test_not_ready_without_store(self, client: AsyncClient):
        """Readiness fails once the store is closed."""
        await close_db()

        response = await client.get("/ready")

        assert response.status_code == 503
        assert response.json()["ready"] is False

    async def test_liveness_check(self, client: AsyncClient):
        """Test the liveness check endpoint."""
        response = await client.get("/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True

    async def test_metrics_endpoint(self, client: AsyncClient, make_envelope):
        """Test the Prometheus metrics endpoint."""
        await client.post("/v1/events", json=make_envelope())

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "ingestion_events_enqueued_total" in response.text


class TestEventEndpoints:
    """Tests for event submission."""

    async def test_submit_event(self, client: AsyncClient, make_envelope):
        """A new event is accepted with 202."""
        response = await client.post("/v1/events", json=make_envelope())

        assert response.status_code == 202
        data = response.json()
        assert data["accepted"] is True
        assert data["duplicate"] is False
        assert data["message"] == "Event queued for ingestion"

    async def test_submit_duplicate(self, client: AsyncClient, make_envelope):
        """Resubmitting the same envelope returns the original job with 200."""
        envelope = make_envelope()

        first = await client.post("/v1/events", json=envelope)
        second = await client.post("/v1/events", json=envelope)

        assert second.status_code == 200
        assert second.json()["duplicate"] is True
        assert second.json()["job_id"] == first.json()["job_id"]

    async def test_submit_invalid_envelope(self, client: AsyncClient, make_envelope):
        """A malformed envelope is rejected with 422 and field errors."""
        envelope = make_envelope()
        envelope["tenant"] = {"tenantId": "  "}
        del envelope["occurredAt"]

        response = await client.post("/v1/events", json=envelope)

        assert response.status_code == 422
        data = response.json()
        assert data["error"].startswith("Invalid event envelope")
        assert len(data["detail"]) == 2

    async def test_submit_when_store_unavailable(self, client: AsyncClient, make_envelope):
        """Submissions fail with 503 when the store is unavailable."""
        await close_db()

        response = await client.post("/v1/events", json=make_envelope())

        assert response.status_code == 503
        assert response.json()["error"] == "store_unavailable"


class TestJobEndpoints:
    """Tests for job lookup and scheduling."""

    async def test_get_job(self, client: AsyncClient, make_envelope):
        """Test getting a job by ID."""
        job_id = (await client.post("/v1/events", json=make_envelope())).json()["job_id"]

        response = await client.get(f"/v1/jobs/{job_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == job_id
        assert data["status"] == "pending"
        assert data["attempt_count"] == 0
        assert "nonce" in data["payload"]

    async def test_get_job_without_payload(self, client: AsyncClient, make_envelope):
        job_id = (await client.post("/v1/events", json=make_envelope())).json()["job_id"]

        response = await client.get(f"/v1/jobs/{job_id}", params={"include_payload": False})

        assert response.json()["payload"] is None

    async def test_get_nonexistent_job(self, client: AsyncClient):
        """Test getting a job that doesn't exist."""
        response = await client.get(f"/v1/jobs/{uuid4()}")

        assert response.status_code == 404

    async def test_schedule_now(self, client: AsyncClient, make_envelope):
        job_id = (await client.post("/v1/events", json=make_envelope())).json()["job_id"]

        response = await client.post(f"/v1/jobs/{job_id}/schedule-now")

        assert response.status_code == 200
        assert response.json() == {"job_id": job_id, "scheduled": True}

    async def test_schedule_now_unknown_job(self, client: AsyncClient):
        response = await client.post(f"/v1/jobs/{uuid4()}/schedule-now")

        assert response.status_code == 404


class TestQueueEndpoints:
    """Tests for queue processing and stats."""

    async def test_process_and_stats(
        self, client: AsyncClient, make_envelope, valuation_payload, test_tenant_id
    ):
        """Events submitted over HTTP are ingested by a process call."""
        await client.post(
            "/v1/events",
            json=make_envelope(
                event_type=EventType.VALUATION_REQUESTED, payload=valuation_payload
            ),
        )

        stats = (await client.get("/v1/queue/stats")).json()
        assert stats["by_status"]["pending"] == 1
        assert stats["pending_ready_count"] == 1

        response = await client.post("/v1/queue/process", params={"limit": 5})

        assert response.status_code == 200
        assert response.json()["processed_count"] == 1

        stats = (await client.get("/v1/queue/stats")).json()
        assert stats["by_status"]["succeeded"] == 1
        assert stats["pending_ready_count"] == 0

        summary = (await client.get(f"/v1/tenants/{test_tenant_id}/summary")).json()
        assert summary == {
            "tenant_id": test_tenant_id,
            "contact_count": 0,
            "lead_count": 1,
            "activity_count": 1,
        }

    async def test_drain(self, client: AsyncClient, make_envelope):
        """Unknown event types are dead-lettered during a drain."""
        for _ in range(3):
            await client.post("/v1/events", json=make_envelope(event_type="website.unknown"))

        response = await client.post("/v1/queue/drain", params={"limit": 2, "max_loops": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["total_picked"] == 3
        assert data["total_dead_lettered"] == 3
        assert data["loops"] == 3

    async def test_process_reports_incomplete_batch(
        self, client: AsyncClient, make_envelope, valuation_payload, monkeypatch
    ):
        """A batch whose jobs cannot be finalized returns 500 with its accounting."""

        async def broken_mark_succeeded(self, job_id, attempt, now=None):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(QueueRepository, "mark_succeeded", broken_mark_succeeded)
        await client.post(
            "/v1/events",
            json=make_envelope(
                event_type=EventType.VALUATION_REQUESTED, payload=valuation_payload
            ),
        )

        response = await client.post("/v1/queue/process")

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "batch_incomplete"
        assert data["result"]["picked_count"] == 1
        assert data["result"]["unfinalized_count"] == 1
        assert data["result"]["processed_count"] == 0

    async def test_process_rejects_bad_limit(self, client: AsyncClient):
        response = await client.post("/v1/queue/process", params={"limit": 0})

        assert response.status_code == 422

    async def test_tenant_stats(self, client: AsyncClient, make_envelope, test_tenant_id):
        await client.post("/v1/events", json=make_envelope())
        await client.post("/v1/events", json=make_envelope(tenant_id="other-tenant"))

        response = await client.get(f"/v1/tenants/{test_tenant_id}/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["tenant_id"] == test_tenant_id
        assert data["by_status"]["pending"] == 1


class TestDeadLetterEndpoints:
    """Tests for dead-letter inspection and requeue."""

    async def _dead_letter(self, client: AsyncClient, make_envelope, count: int = 1) -> list[str]:
        job_ids = []
        for _ in range(count):
            response = await client.post(
                "/v1/events", json=make_envelope(event_type="website.unknown")
            )
            job_ids.append(response.json()["job_id"])
        await client.post("/v1/queue/drain")
        return job_ids

    async def test_list(self, client: AsyncClient, make_envelope, test_tenant_id):
        job_ids = await self._dead_letter(client, make_envelope, count=2)

        response = await client.get("/v1/dead-letter", params={"tenant_id": test_tenant_id})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["include_payload"] is False
        assert {job["id"] for job in data["jobs"]} == set(job_ids)
        assert all(job["payload"] is None for job in data["jobs"])
        for job in data["jobs"]:
            assert job["last_error"] == "invalid_payload"
            assert job["last_error_detail"] == (
                "no handler registered for event type 'website.unknown'"
            )

    async def test_list_rejects_bad_limit(self, client: AsyncClient):
        response = await client.get("/v1/dead-letter", params={"limit": 1000})

        assert response.status_code == 422

    async def test_requeue_one(self, client: AsyncClient, make_envelope):
        [job_id] = await self._dead_letter(client, make_envelope)

        response = await client.post(f"/v1/dead-letter/{job_id}/requeue")

        assert response.status_code == 200
        assert response.json() == {"job_id": job_id, "requeued": True}

        job = (await client.get(f"/v1/jobs/{job_id}")).json()
        assert job["status"] == "pending"
        assert job["attempt_count"] == 0

    async def test_requeue_one_not_dead_lettered(self, client: AsyncClient):
        response = await client.post(f"/v1/dead-letter/{uuid4()}/requeue")

        assert response.status_code == 200
        assert response.json()["requeued"] is False

    async def test_requeue_many(self, client: AsyncClient, make_envelope, test_tenant_id):
        await self._dead_letter(client, make_envelope, count=3)

        response = await client.post(
            "/v1/dead-letter/requeue", json={"tenant_id": test_tenant_id, "limit": 2}
        )

        assert response.status_code == 200
        assert response.json() == {"matched_count": 2, "requeued_count": 2, "skipped_count": 0}

    async def test_requeue_many_without_body(self, client: AsyncClient, make_envelope):
        await self._dead_letter(client, make_envelope, count=2)

        response = await client.post("/v1/dead-letter/requeue")

        assert response.status_code == 200
        assert response.json()["requeued_count"] == 2
