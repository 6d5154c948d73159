"""
Reference CRM handlers for website events.

Each handler writes in its own transaction and records the queue job id on
what it creates, so replaying an attempt after a crash returns the records
already written instead of creating new ones.
"""

import logging

from ingest_queue.constants import EventType
from ingest_queue.db import get_session_context
from ingest_queue.db.crm import CrmRepository
from ingest_queue.handlers.registry import register_handler
from ingest_queue.types.job import JobContext, JobResult
from ingest_queue.types.payloads import (
    LeadSubmittedPayload,
    ListingInteractionPayload,
    SearchPerformedPayload,
    ValuationRequestedPayload,
)

logger = logging.getLogger(__name__)


def _replayed(lead_id: object | None, activity_id: object | None) -> JobResult:
    return JobResult(
        success=True,
        output={
            "lead_id": str(lead_id) if lead_id else None,
            "activity_id": str(activity_id) if activity_id else None,
            "replayed": True,
        },
    )


@register_handler(EventType.LEAD_SUBMITTED)
async def handle_lead_submitted(context: JobContext) -> JobResult:
    """
    Create a lead and a lead_submitted activity.

    The contact is matched by normalized email, then normalized phone, and
    created when neither matches.
    """
    payload = LeadSubmittedPayload.model_validate(context.payload)

    async with get_session_context() as session:
        crm = CrmRepository(session)

        existing = await crm.get_lead_by_source_job(context.job_id)
        if existing is not None:
            activity = await crm.get_activity_by_source_job(context.job_id)
            return _replayed(existing.id, activity.id if activity else None)

        contact = await crm.resolve_or_create_contact(
            tenant_id=context.tenant_id,
            name=payload.contact.name,
            email=payload.contact.email,
            phone=payload.contact.phone,
            source=payload.source,
            occurred_at=context.occurred_at,
        )
        contact_id = contact.id if contact is not None else None
        details = payload.property_details

        lead = await crm.create_lead(
            tenant_id=context.tenant_id,
            contact_id=contact_id,
            source_job_id=context.job_id,
            status="new",
            lead_type="website_lead",
            source=payload.source,
            timeframe=payload.timeframe,
            notes=payload.message,
            listing_id=payload.listing.id,
            listing_url=payload.listing.url,
            listing_address=payload.listing.address,
            property_type=details.property_type if details else None,
            beds=details.beds if details else None,
            baths=details.baths if details else None,
            sqft=details.sqft if details else None,
            created_at=context.occurred_at,
            updated_at=context.occurred_at,
        )
        activity = await crm.create_activity(
            tenant_id=context.tenant_id,
            contact_id=contact_id,
            lead_id=lead.id,
            source_job_id=context.job_id,
            activity_type="lead_submitted",
            occurred_at=context.occurred_at,
            summary=f"Lead submitted from {payload.source}",
            metadata_json=context.payload,
        )

    logger.info(
        "Lead ingested",
        extra={"job_id": str(context.job_id), "lead_id": str(lead.id)},
    )
    return JobResult(
        success=True,
        output={
            "contact_id": str(contact_id) if contact_id else None,
            "lead_id": str(lead.id),
            "activity_id": str(activity.id),
        },
    )


@register_handler(EventType.VALUATION_REQUESTED)
async def handle_valuation_requested(context: JobContext) -> JobResult:
    """Create a valuation_request lead and a valuation_requested activity."""
    payload = ValuationRequestedPayload.model_validate(context.payload)

    async with get_session_context() as session:
        crm = CrmRepository(session)

        existing = await crm.get_lead_by_source_job(context.job_id)
        if existing is not None:
            activity = await crm.get_activity_by_source_job(context.job_id)
            return _replayed(existing.id, activity.id if activity else None)

        lead = await crm.create_lead(
            tenant_id=context.tenant_id,
            contact_id=None,
            source_job_id=context.job_id,
            status="new",
            lead_type="valuation_request",
            source="website_valuation",
            listing_address=payload.address,
            property_type=payload.property_type,
            beds=payload.beds,
            baths=payload.baths,
            sqft=payload.sqft,
            created_at=context.occurred_at,
            updated_at=context.occurred_at,
        )
        activity = await crm.create_activity(
            tenant_id=context.tenant_id,
            lead_id=lead.id,
            source_job_id=context.job_id,
            activity_type="valuation_requested",
            occurred_at=context.occurred_at,
            summary="Website valuation request received",
            metadata_json=context.payload,
        )

    return JobResult(
        success=True,
        output={"lead_id": str(lead.id), "activity_id": str(activity.id)},
    )


async def _record_activity(context: JobContext, activity_type: str, summary: str) -> JobResult:
    async with get_session_context() as session:
        crm = CrmRepository(session)

        existing = await crm.get_activity_by_source_job(context.job_id)
        if existing is not None:
            return _replayed(None, existing.id)

        activity = await crm.create_activity(
            tenant_id=context.tenant_id,
            source_job_id=context.job_id,
            activity_type=activity_type,
            occurred_at=context.occurred_at,
            summary=summary,
            metadata_json=context.payload,
        )

    return JobResult(success=True, output={"activity_id": str(activity.id)})


@register_handler(EventType.SEARCH_PERFORMED)
async def handle_search_performed(context: JobContext) -> JobResult:
    payload = SearchPerformedPayload.model_validate(context.payload)
    query = payload.search_context.query
    summary = f"Website search: {query}" if query else "Website search performed"
    return await _record_activity(context, "website_search_performed", summary)


_LISTING_ACTIONS = {
    EventType.LISTING_VIEWED: ("website_listing_viewed", "Listing viewed"),
    EventType.LISTING_FAVORITED: ("website_listing_favorited", "Listing favorited"),
    EventType.LISTING_UNFAVORITED: ("website_listing_unfavorited", "Listing unfavorited"),
}


@register_handler(EventType.LISTING_VIEWED)
@register_handler(EventType.LISTING_FAVORITED)
@register_handler(EventType.LISTING_UNFAVORITED)
async def handle_listing_interaction(context: JobContext) -> JobResult:
    payload = ListingInteractionPayload.model_validate(context.payload)
    activity_type, label = _LISTING_ACTIONS[EventType(context.event_type)]
    listing = payload.listing
    return await _record_activity(
        context, activity_type, f"{label}: {listing.address or listing.id}"
    )
