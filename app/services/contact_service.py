"""
Contact Service

Public contact form inbox with manual status triage.
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound
from app.models.contact import Contact
from app.models.enums import ContactStatus
from app.schemas.contact import ContactCreate
from app.services import email_service, notification_service


logger = logging.getLogger(__name__)


async def create_contact(
    db: AsyncSession,
    data: ContactCreate,
    background_tasks: BackgroundTasks,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Contact:
    contact = Contact(
        name=data.name.strip(),
        email=data.email.lower(),
        subject=data.subject.strip(),
        message=data.message.strip(),
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        status=ContactStatus.NEW,
    )
    db.add(contact)
    await db.commit()
    logger.info("Contact message %s received from %s", contact.id, contact.email)

    admin_email = email_service.admin_address()
    if admin_email:
        notification_service.schedule_email(
            background_tasks,
            email_service.contact_alert(
                admin_email, contact.name, contact.email, contact.subject, contact.message
            ),
        )
    return contact


async def list_contacts(
    db: AsyncSession,
    status: Optional[ContactStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Contact], int]:
    """Newest-first page of contact messages."""
    query = select(Contact)
    count_query = select(func.count(Contact.id))
    if status is not None:
        query = query.where(Contact.status == status)
        count_query = count_query.where(Contact.status == status)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(Contact.created_at.desc(), Contact.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def get_contact(db: AsyncSession, contact_id: int) -> Contact:
    result = await db.execute(select(Contact).where(Contact.id == contact_id))
    contact = result.scalar_one_or_none()
    if contact is None:
        raise NotFound("Contact not found")
    return contact


async def update_status(db: AsyncSession, contact_id: int, status: ContactStatus) -> Contact:
    contact = await get_contact(db, contact_id)
    contact.status = status
    await db.commit()
    return contact


async def delete_contact(db: AsyncSession, contact_id: int) -> None:
    contact = await get_contact(db, contact_id)
    await db.delete(contact)
    await db.commit()
