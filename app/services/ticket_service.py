"""
Ticket Service

Support ticket lifecycle. ``status`` is a function of who spoke last:

    create            -> open     (seed user message)
    reply(user)       -> pending  (waiting on support)
    reply(admin)      -> open     (waiting on the submitter)
    close             -> closed   (terminal, idempotent)

Replies to a closed ticket are rejected without mutation.
"""

import logging
import secrets
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import noload

from app.core.exceptions import Forbidden, InternalError, NotFound
from app.core.utils import utc_now
from app.models.enums import MessageSender, TicketStatus
from app.models.ticket import Ticket, TicketMessage
from app.services import email_service, notification_service


logger = logging.getLogger(__name__)

# No visually confusable characters: 0, O, 1, I, L
TICKET_LETTERS = "ABCDEFGHJKMNPQRSTUVWXYZ"
TICKET_ALPHANUM = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
MAX_ID_ATTEMPTS = 5

DEFAULT_SUBJECT = "No subject"
CLOSED_MESSAGE = "Ticket has been closed by support staff."


def generate_ticket_id() -> str:
    """Generate a human-typeable ticket ID such as ``KXT-4PQ-9ZMA``."""
    def part(alphabet: str, length: int) -> str:
        return "".join(secrets.choice(alphabet) for _ in range(length))

    return f"{part(TICKET_LETTERS, 3)}-{part(TICKET_ALPHANUM, 3)}-{part(TICKET_ALPHANUM, 4)}"


# ============== State Machine ==============

def status_after_reply(sender: MessageSender) -> TicketStatus:
    if sender == MessageSender.USER:
        return TicketStatus.PENDING
    if sender == MessageSender.ADMIN:
        return TicketStatus.OPEN
    raise ValueError(f"{sender} cannot reply to a ticket")


def apply_reply(ticket: Ticket, sender: MessageSender, text: str) -> TicketMessage:
    """
    Append a reply and derive the new status.

    Raises:
        Forbidden: If the ticket is closed.
    """
    if ticket.status == TicketStatus.CLOSED:
        raise Forbidden("This ticket has been closed. You cannot add new replies.")

    new_status = status_after_reply(sender)
    message = TicketMessage(sender=sender, text=text)
    ticket.messages.append(message)
    ticket.status = new_status
    ticket.last_reply_by = sender
    ticket.updated_at = utc_now()
    return message


def apply_close(ticket: Ticket) -> bool:
    """
    Close the ticket, recording a system message.

    Returns:
        bool: False if the ticket was already closed (nothing changed).
    """
    if ticket.status == TicketStatus.CLOSED:
        return False

    ticket.messages.append(TicketMessage(sender=MessageSender.SYSTEM, text=CLOSED_MESSAGE))
    ticket.status = TicketStatus.CLOSED
    ticket.last_reply_by = MessageSender.SYSTEM
    ticket.updated_at = utc_now()
    return True


# ============== Persistence ==============

async def _ticket_id_taken(db: AsyncSession, ticket_id: str) -> bool:
    result = await db.execute(select(Ticket.id).where(Ticket.ticket_id == ticket_id))
    return result.scalar_one_or_none() is not None


async def create_ticket(
    db: AsyncSession,
    email: str,
    message: str,
    background_tasks: BackgroundTasks,
    subject: Optional[str] = None,
) -> Ticket:
    """
    Open a ticket with its seed message.

    The public ID is regenerated on collision, whether detected up front or
    by the unique constraint at commit time.
    """
    subject = (subject or "").strip() or DEFAULT_SUBJECT
    email = email.lower()

    for attempt in range(MAX_ID_ATTEMPTS):
        ticket_id = generate_ticket_id()
        if await _ticket_id_taken(db, ticket_id):
            logger.warning("Ticket ID collision on %s (attempt %d)", ticket_id, attempt + 1)
            continue

        ticket = Ticket(
            ticket_id=ticket_id,
            email=email,
            subject=subject,
            status=TicketStatus.OPEN,
            last_reply_by=MessageSender.USER,
        )
        ticket.messages.append(TicketMessage(sender=MessageSender.USER, text=message))
        db.add(ticket)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Ticket ID %s taken at commit (attempt %d)", ticket_id, attempt + 1)
            continue
        break
    else:
        raise InternalError("Could not allocate a ticket ID")

    logger.info("Created ticket %s", ticket.ticket_id)

    notification_service.schedule_email(
        background_tasks,
        email_service.ticket_created_email(email, ticket.ticket_id, subject, message),
    )
    admin_email = email_service.admin_address()
    if admin_email:
        notification_service.schedule_email(
            background_tasks,
            email_service.new_ticket_alert(admin_email, ticket.ticket_id, email, subject, message),
        )

    return ticket


async def get_ticket(db: AsyncSession, ticket_id: str) -> Ticket:
    """
    Look up a ticket by its public ID.

    Raises:
        NotFound: If no ticket has that ID.
    """
    result = await db.execute(
        select(Ticket).where(Ticket.ticket_id == ticket_id.strip().upper())
    )
    ticket = result.scalar_one_or_none()
    if ticket is None:
        raise NotFound("Ticket not found")
    return ticket


async def reply_to_ticket(
    db: AsyncSession,
    ticket_id: str,
    sender: MessageSender,
    text: str,
    background_tasks: BackgroundTasks,
) -> Ticket:
    """Append a reply; admin replies notify the submitter, user replies notify support."""
    ticket = await get_ticket(db, ticket_id)
    apply_reply(ticket, sender, text)
    await db.commit()

    if sender == MessageSender.ADMIN:
        notification_service.schedule_email(
            background_tasks,
            email_service.ticket_reply_email(
                ticket.email, ticket.ticket_id, ticket.subject, text, from_support=True
            ),
        )
    else:
        admin_email = email_service.admin_address()
        if admin_email:
            notification_service.schedule_email(
                background_tasks,
                email_service.ticket_reply_email(
                    admin_email, ticket.ticket_id, ticket.subject, text, from_support=False
                ),
            )

    return ticket


async def close_ticket(
    db: AsyncSession,
    ticket_id: str,
    background_tasks: BackgroundTasks,
) -> Ticket:
    """Close a ticket. Closing an already closed ticket returns it unchanged."""
    ticket = await get_ticket(db, ticket_id)
    if not apply_close(ticket):
        return ticket

    await db.commit()
    logger.info("Closed ticket %s", ticket.ticket_id)

    notification_service.schedule_email(
        background_tasks,
        email_service.ticket_closed_email(ticket.email, ticket.ticket_id, ticket.subject),
    )
    return ticket


async def list_tickets(
    db: AsyncSession,
    status: Optional[TicketStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Ticket], int]:
    """
    List tickets by most recent activity.

    Returns:
        tuple: (tickets on the page, total matching tickets)
    """
    # List projection: message threads are not loaded
    query = select(Ticket).options(noload(Ticket.messages))
    count_query = select(func.count(Ticket.id))
    if status is not None:
        query = query.where(Ticket.status == status)
        count_query = count_query.where(Ticket.status == status)

    total = (await db.execute(count_query)).scalar_one()

    result = await db.execute(
        query.order_by(Ticket.updated_at.desc(), Ticket.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total
