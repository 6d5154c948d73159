"""
CRM repository used by the reference handlers and the summary reporter.
"""

import logging
import re
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ingest_queue.clock import utcnow
from ingest_queue.db.models import Activity, Contact, Lead
from ingest_queue.types.queue import TenantSummary

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D+")


def normalize_email(email: str | None) -> str | None:
    """Lowercased, trimmed email, or None when blank."""
    if not email:
        return None
    email = email.strip().lower()
    return email or None


def normalize_phone(phone: str | None) -> str | None:
    """Digits of a phone number, or None when it has none."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    return digits or None


class CrmRepository:
    """
    Data access for contacts, leads and activities.

    Leads and activities carry the id of the queue job that created them,
    so a handler replaying an attempt can find what it already wrote.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_lead_by_source_job(self, job_id: UUID) -> Lead | None:
        result = await self._session.execute(select(Lead).where(Lead.source_job_id == job_id))
        return result.scalar_one_or_none()

    async def get_activity_by_source_job(self, job_id: UUID) -> Activity | None:
        result = await self._session.execute(
            select(Activity).where(Activity.source_job_id == job_id)
        )
        return result.scalar_one_or_none()

    async def resolve_or_create_contact(
        self,
        tenant_id: str,
        name: str | None,
        email: str | None,
        phone: str | None,
        source: str,
        occurred_at: datetime,
    ) -> Contact | None:
        """
        Find a tenant's contact by normalized email, then by normalized phone.

        A matched contact has its missing fields filled in. A new contact is
        created only when an email or phone is present.

        Returns:
            The contact, or None when there is nothing to identify one by.
        """
        email_normalized = normalize_email(email)
        phone_normalized = normalize_phone(phone)

        contact = None
        if email_normalized:
            result = await self._session.execute(
                select(Contact).where(
                    Contact.tenant_id == tenant_id,
                    Contact.email_normalized == email_normalized,
                )
            )
            contact = result.scalar_one_or_none()
        if contact is None and phone_normalized:
            result = await self._session.execute(
                select(Contact).where(
                    Contact.tenant_id == tenant_id,
                    Contact.phone_normalized == phone_normalized,
                )
            )
            contact = result.scalar_one_or_none()

        if contact is not None:
            contact.full_name = contact.full_name or name
            if not contact.email_normalized and email_normalized:
                contact.email = email
                contact.email_normalized = email_normalized
            if not contact.phone_normalized and phone_normalized:
                contact.phone = phone
                contact.phone_normalized = phone_normalized
            contact.source = contact.source or source
            contact.updated_at = utcnow()
            await self._session.flush()
            return contact

        if not email_normalized and not phone_normalized:
            return None

        contact = Contact(
            tenant_id=tenant_id,
            full_name=name,
            email=email,
            email_normalized=email_normalized,
            phone=phone,
            phone_normalized=phone_normalized,
            source=source,
            created_at=occurred_at,
            updated_at=occurred_at,
        )
        self._session.add(contact)
        await self._session.flush()
        logger.info(
            "Created contact",
            extra={"contact_id": str(contact.id), "tenant_id": tenant_id},
        )
        return contact

    async def create_lead(self, **fields: Any) -> Lead:
        lead = Lead(**fields)
        self._session.add(lead)
        await self._session.flush()
        return lead

    async def create_activity(self, **fields: Any) -> Activity:
        activity = Activity(**fields)
        self._session.add(activity)
        await self._session.flush()
        return activity

    async def get_tenant_summary(self, tenant_id: str) -> TenantSummary:
        """Count a tenant's contacts, leads and activities."""
        counts = []
        for model in (Contact, Lead, Activity):
            result = await self._session.execute(
                select(func.count()).select_from(model).where(model.tenant_id == tenant_id)
            )
            counts.append(result.scalar() or 0)

        return TenantSummary(
            tenant_id=tenant_id,
            contact_count=counts[0],
            lead_count=counts[1],
            activity_count=counts[2],
        )
