"""
Unit tests for envelope parsing.
"""

from datetime import datetime

import pytest

from ingest_queue.errors import EnvelopeValidationError
from ingest_queue.types.envelope import EventEnvelope, parse_envelope


def _raw(**overrides):
    raw = {
        "eventType": "website.lead.submitted",
        "version": 1,
        "occurredAt": "2026-03-01T09:30:00Z",
        "tenant": {"tenantId": "tenant-a", "tenantSlug": "a", "tenantDomain": "a.example.com"},
        "payload": {"source": "website"},
    }
    raw.update(overrides)
    return raw


def test_parses_camel_case_producer_shape():
    envelope = parse_envelope(_raw())

    assert envelope.event_type == "website.lead.submitted"
    assert envelope.tenant.tenant_id == "tenant-a"
    assert envelope.tenant.tenant_domain == "a.example.com"
    assert envelope.payload == {"source": "website"}


def test_parses_snake_case():
    envelope = parse_envelope(
        {
            "event_type": "website.search.performed",
            "occurred_at": "2026-03-01T09:30:00",
            "tenant": {"tenant_id": "tenant-a"},
            "payload": {},
        }
    )

    assert envelope.version == 1
    assert envelope.tenant.tenant_slug is None


def test_occurred_at_normalized_to_naive_utc():
    envelope = parse_envelope(_raw(occurredAt="2026-03-01T11:30:00+02:00"))

    assert envelope.occurred_at == datetime(2026, 3, 1, 9, 30)
    assert envelope.occurred_at.tzinfo is None


def test_envelope_instance_passes_through():
    envelope = parse_envelope(_raw())

    assert parse_envelope(envelope) is envelope


def test_envelope_is_immutable():
    envelope = parse_envelope(_raw())

    with pytest.raises(Exception):
        envelope.event_type = "other"


@pytest.mark.parametrize(
    "overrides",
    [
        {"eventType": "   "},
        {"version": 0},
        {"occurredAt": "not-a-date"},
        {"tenant": {"tenantSlug": "missing-id"}},
        {"tenant": {"tenantId": "  "}},
        {"payload": ["not", "a", "mapping"]},
    ],
)
def test_rejects_malformed_envelopes(overrides):
    with pytest.raises(EnvelopeValidationError) as exc_info:
        parse_envelope(_raw(**overrides))

    assert exc_info.value.errors


def test_rejects_missing_payload():
    raw = _raw()
    del raw["payload"]

    with pytest.raises(EnvelopeValidationError):
        parse_envelope(raw)


def test_rejects_non_mapping():
    with pytest.raises(EnvelopeValidationError, match="mapping"):
        parse_envelope("website.lead.submitted")  # type: ignore[arg-type]


def test_model_accepts_field_names():
    envelope = EventEnvelope(
        event_type="website.listing.viewed",
        occurred_at=datetime(2026, 1, 1),
        tenant={"tenant_id": "t"},
        payload={"listing": {"id": "l-1"}},
    )

    assert envelope.tenant.tenant_id == "t"
