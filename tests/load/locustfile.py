"""
Locust load testing for the ingestion queue API.

Run with:
    locust -f tests/load/locustfile.py --host=http://localhost:8000

Or headless:
    locust -f tests/load/locustfile.py --host=http://localhost:8000 \
        --headless -u 100 -r 10 --run-time 5m
"""

import random
import uuid
from datetime import UTC, datetime
from typing import Any

from locust import HttpUser, between, task

# Test tenant configuration
TEST_TENANTS = [f"load-test-tenant-{i}" for i in range(5)]

EVENT_TYPES = [
    "website.lead.submitted",
    "website.valuation.requested",
    "website.search.performed",
    "website.listing.viewed",
    "website.listing.favorited",
]


def _payload(event_type: str) -> dict[str, Any]:
    suffix = uuid.uuid4().hex[:8]
    if event_type == "website.lead.submitted":
        return {
            "source": "website",
            "contact": {
                "name": f"Load Test {suffix}",
                "email": f"load-{suffix}@example.com",
            },
            "timeframe": random.choice(["0-3 months", "3-6 months", None]),
        }
    if event_type == "website.valuation.requested":
        return {
            "address": f"{random.randint(1, 999)} Load Test Ave",
            "propertyType": random.choice(["condo", "single_family"]),
            "beds": random.randint(1, 5),
            "baths": random.choice([1, 1.5, 2, 3]),
        }
    if event_type == "website.search.performed":
        return {"searchContext": {"query": random.choice(["waterfront", "downtown", None])}}
    return {"listing": {"id": f"mls-{suffix}", "address": f"{suffix} Main St"}}


def _envelope(tenant_id: str, event_type: str) -> dict[str, Any]:
    return {
        "eventType": event_type,
        "version": 1,
        "occurredAt": datetime.now(UTC).isoformat(),
        "tenant": {"tenantId": tenant_id, "tenantDomain": f"{tenant_id}.example.com"},
        "payload": _payload(event_type),
    }


class WebsiteEventUser(HttpUser):
    """
    Simulated web front end submitting events.

    Simulates realistic traffic patterns:
    - Event submissions (most common)
    - Job status checks
    - Queue and tenant stats queries
    """

    wait_time = between(0.5, 2)  # Wait 0.5-2 seconds between requests

    def on_start(self):
        """Called when a user starts."""
        self.tenant_id = random.choice(TEST_TENANTS)
        self.created_job_ids: list[str] = []

    @task(10)  # Weight: most common operation
    def submit_event(self):
        """Submit a new website event."""
        envelope = _envelope(self.tenant_id, random.choice(EVENT_TYPES))

        response = self.client.post("/v1/events", json=envelope, name="/v1/events [POST]")

        if response.status_code == 202:
            self.created_job_ids.append(response.json()["job_id"])
            # Keep only recent job IDs
            if len(self.created_job_ids) > 100:
                self.created_job_ids = self.created_job_ids[-100:]

    @task(5)
    def get_job_status(self):
        """Check status of a previously created job."""
        if not self.created_job_ids:
            return

        job_id = random.choice(self.created_job_ids)
        self.client.get(
            f"/v1/jobs/{job_id}",
            params={"include_payload": False},
            name="/v1/jobs/{job_id} [GET]",
        )

    @task(2)
    def get_stats(self):
        """Get queue statistics."""
        self.client.get("/v1/queue/stats", name="/v1/queue/stats [GET]")

    @task(2)
    def get_tenant_summary(self):
        """Get CRM counters for the tenant."""
        self.client.get(
            f"/v1/tenants/{self.tenant_id}/summary",
            name="/v1/tenants/{tenant_id}/summary [GET]",
        )

    @task(1)
    def health_check(self):
        """Check API health."""
        self.client.get("/health", name="/health [GET]")


class BurstSubmissionUser(HttpUser):
    """
    User that submits events in bursts, as a page with many listings would.
    """

    wait_time = between(5, 10)  # Wait between bursts

    def on_start(self):
        """Called when a user starts."""
        self.tenant_id = f"burst-tenant-{random.randint(1, 3)}"

    @task
    def burst_submit(self):
        """Submit a burst of listing views."""
        burst_size = random.randint(10, 50)

        for _ in range(burst_size):
            self.client.post(
                "/v1/events",
                json=_envelope(self.tenant_id, "website.listing.viewed"),
                name="/v1/events [POST] (burst)",
            )


class DuplicateSubmissionUser(HttpUser):
    """
    User that resubmits envelopes, as a front end retrying after a timeout does.
    """

    wait_time = between(1, 3)

    def on_start(self):
        """Called when a user starts."""
        self.tenant_id = "dedup-test-tenant"
        self.submitted: list[tuple[dict[str, Any], str]] = []

    @task(3)
    def submit_new_event(self):
        """Submit a new event and remember it."""
        envelope = _envelope(self.tenant_id, "website.lead.submitted")

        response = self.client.post("/v1/events", json=envelope, name="/v1/events [POST] (new)")

        if response.status_code == 202:
            self.submitted.append((envelope, response.json()["job_id"]))
            if len(self.submitted) > 50:
                self.submitted = self.submitted[-50:]

    @task(7)
    def submit_duplicate_event(self):
        """Resubmit an already accepted envelope."""
        if not self.submitted:
            return

        envelope, job_id = random.choice(self.submitted)

        with self.client.post(
            "/v1/events",
            json=envelope,
            name="/v1/events [POST] (duplicate)",
            catch_response=True,
        ) as response:
            # Should return the existing job, not create a new one
            data = response.json() if response.status_code in (200, 202) else {}
            if response.status_code != 200 or not data.get("duplicate"):
                response.failure("Duplicate event was accepted as new")
            elif data.get("job_id") != job_id:
                response.failure("Duplicate returned a different job id")
            else:
                response.success()
