"""
Ticket Routes

Public ticket submission and tracking, plus admin management.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Query, status

from app.api.deps import AdminUser, DbSession, OptionalUser
from app.core.exceptions import Forbidden, Unauthorized
from app.models.enums import MessageSender, TicketStatus
from app.models.ticket import Ticket
from app.schemas.common import Page
from app.schemas.ticket import TicketCreate, TicketReply, TicketResponse, TicketSummary
from app.services import ticket_service


router = APIRouter(prefix="/tickets", tags=["Tickets"])

MAX_PAGE_SIZE = 100


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a support ticket",
)
async def create_ticket(
    data: TicketCreate,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> Ticket:
    """
    Open a ticket. No account is needed: the returned ``ticketId`` is the
    token used to track it. The submitter (and support, if configured)
    is notified by email.
    """
    return await ticket_service.create_ticket(
        db,
        email=data.email,
        subject=data.subject,
        message=data.message,
        background_tasks=background_tasks,
    )


@router.get(
    "",
    response_model=Page[TicketSummary],
    summary="List tickets (admin)",
)
async def list_tickets(
    admin: AdminUser,
    db: DbSession,
    status_filter: Annotated[Optional[TicketStatus], Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
) -> Page[TicketSummary]:
    """Tickets by most recent activity, without message threads."""
    tickets, total = await ticket_service.list_tickets(db, status_filter, page, limit)
    return Page[TicketSummary].build(
        [TicketSummary.model_validate(t) for t in tickets], total, page, limit
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Track a ticket by its public ID",
)
async def get_ticket(ticket_id: str, db: DbSession) -> Ticket:
    return await ticket_service.get_ticket(db, ticket_id)


@router.post(
    "/{ticket_id}/reply",
    response_model=TicketResponse,
    summary="Reply to a ticket",
)
async def reply_to_ticket(
    ticket_id: str,
    data: TicketReply,
    db: DbSession,
    background_tasks: BackgroundTasks,
    current_user: OptionalUser,
) -> Ticket:
    """
    Append a reply. ``sender=user`` is allowed to anyone holding the
    ticket ID; ``sender=admin`` requires an admin session.

    Returns 403 if the ticket is closed.
    """
    sender = MessageSender(data.sender)
    if sender == MessageSender.ADMIN:
        if current_user is None:
            raise Unauthorized()
        if not current_user.is_admin:
            raise Forbidden("Admin access required to reply as support")

    return await ticket_service.reply_to_ticket(
        db, ticket_id, sender, data.message, background_tasks
    )


@router.patch(
    "/{ticket_id}/close",
    response_model=TicketResponse,
    summary="Close a ticket (admin)",
)
async def close_ticket(
    ticket_id: str,
    admin: AdminUser,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> Ticket:
    """Close a ticket. Closing an already closed ticket is a no-op."""
    return await ticket_service.close_ticket(db, ticket_id, background_tasks)
