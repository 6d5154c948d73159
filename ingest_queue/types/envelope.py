"""
Event envelope definitions.

An envelope is the normalized shape that producers hand to the queue. Field
names accept both snake_case and the camelCase used by the web front ends.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ingest_queue.clock import to_naive_utc
from ingest_queue.constants import CURRENT_EVENT_VERSION
from ingest_queue.errors import EnvelopeValidationError


class TenantRef(BaseModel):
    """Identity of the tenant that owns an event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tenant_id: str = Field(..., min_length=1, max_length=255, alias="tenantId")
    tenant_slug: str | None = Field(default=None, max_length=255, alias="tenantSlug")
    tenant_domain: str | None = Field(default=None, max_length=255, alias="tenantDomain")

    @field_validator("tenant_id")
    @classmethod
    def _strip_tenant_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("tenant_id must not be blank")
        return value


class EventEnvelope(BaseModel):
    """
    Normalized website event submitted for ingestion.

    Immutable once constructed; the queue copies its fields into a job.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: str = Field(..., min_length=1, max_length=128, alias="eventType")
    version: int = Field(default=CURRENT_EVENT_VERSION, ge=1)
    occurred_at: datetime = Field(..., alias="occurredAt")
    tenant: TenantRef
    payload: dict[str, Any]

    @field_validator("event_type")
    @classmethod
    def _strip_event_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("event_type must not be blank")
        return value

    @field_validator("occurred_at")
    @classmethod
    def _normalize_occurred_at(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


def parse_envelope(data: EventEnvelope | Mapping[str, Any]) -> EventEnvelope:
    """
    Validate raw producer input into an EventEnvelope.

    Args:
        data: An envelope instance or a mapping in producer shape.

    Returns:
        The validated envelope.

    Raises:
        EnvelopeValidationError: If the input is not a well-formed envelope.
    """
    if isinstance(data, EventEnvelope):
        return data
    if not isinstance(data, Mapping):
        raise EnvelopeValidationError(
            f"Envelope must be a mapping, got {type(data).__name__}"
        )
    try:
        return EventEnvelope.model_validate(dict(data))
    except ValidationError as e:
        raise EnvelopeValidationError(
            f"Invalid event envelope: {e.error_count()} validation error(s)",
            errors=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e
