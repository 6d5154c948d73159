"""
Deterministic envelope fingerprints for the dedup ledger.
"""

import hashlib
import json
from typing import Any

from ingest_queue.types.envelope import EventEnvelope


def _canonical_json(value: Any) -> str:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def compute_dedup_key(envelope: EventEnvelope, include_occurred_at: bool = True) -> str:
    """
    Compute the dedup key of an envelope.

    The key covers the tenant, the event type and the payload content. Key
    order inside the payload does not matter. The producer timestamp is part
    of the key only when include_occurred_at is set, in which case only
    timestamp-identical resubmissions are treated as duplicates.

    Args:
        envelope: The validated envelope.
        include_occurred_at: Whether occurred_at participates in the key.

    Returns:
        A 64 character hex SHA-256 digest.
    """
    material: dict[str, Any] = {
        "tenant_id": envelope.tenant.tenant_id,
        "event_type": envelope.event_type,
        "payload": envelope.payload,
    }
    if include_occurred_at:
        material["occurred_at"] = envelope.occurred_at.isoformat()

    return hashlib.sha256(_canonical_json(material).encode("utf-8")).hexdigest()
