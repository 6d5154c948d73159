"""
Payload schemas for the website event types handled by the CRM handlers.

Payloads arrive in the camelCase shape emitted by the web front ends.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ContactDetails(_Payload):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ListingReference(_Payload):
    id: str | None = None
    url: str | None = None
    address: str | None = None


class PropertyDetails(_Payload):
    property_type: str
    beds: int = Field(ge=0)
    baths: float = Field(ge=0)
    sqft: int | None = Field(default=None, ge=0)


class LeadSubmittedPayload(_Payload):
    """Payload of website.lead.submitted."""

    source: str = "website"
    contact: ContactDetails
    timeframe: str | None = None
    message: str | None = None
    listing: ListingReference = Field(default_factory=ListingReference)
    property_details: PropertyDetails | None = None


class ValuationRequestedPayload(_Payload):
    """Payload of website.valuation.requested."""

    address: str = Field(..., min_length=1)
    property_type: str
    beds: int = Field(ge=0)
    baths: float = Field(ge=0)
    sqft: int | None = Field(default=None, ge=0)


class SearchContext(_Payload):
    query: str | None = None
    filters_json: str | None = None
    sort_field: str | None = None
    sort_order: str | None = None
    page: int | None = None


class ActorContext(_Payload):
    clerk_user_id: str | None = None
    session_id: str | None = None


class ListingSnapshot(_Payload):
    id: str = Field(..., min_length=1)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    price: float | None = None
    beds: int | None = None
    baths: float | None = None
    sqft: int | None = None
    property_type: str | None = None


class SearchPerformedPayload(_Payload):
    """Payload of website.search.performed."""

    source: str = "website"
    search_context: SearchContext
    result_count: int | None = None
    actor: ActorContext | None = None


class ListingInteractionPayload(_Payload):
    """Payload of website.listing.viewed / favorited / unfavorited."""

    source: str = "website"
    listing: ListingSnapshot
    search_context: SearchContext | None = None
    actor: ActorContext | None = None
