"""
Ticket Schemas

Pydantic models for ticket request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from app.models.enums import MessageSender, TicketStatus
from app.schemas.common import ApiModel, NonBlankStr


class TicketCreate(ApiModel):
    """Schema for opening a ticket."""

    email: EmailStr = Field(..., description="Submitter email")
    subject: Optional[str] = Field(None, max_length=255, description="Defaults to 'No subject'")
    message: NonBlankStr = Field(..., description="Initial message")


class TicketReply(ApiModel):
    """Schema for replying to a ticket. System messages are never client-supplied."""

    sender: Literal["user", "admin"]
    message: NonBlankStr


class TicketMessageResponse(ApiModel):
    sender: MessageSender
    text: str
    created_at: datetime


class TicketSummary(ApiModel):
    """List projection of a ticket (messages excluded)."""

    ticket_id: str
    email: str
    subject: str
    status: TicketStatus
    last_reply_by: MessageSender
    created_at: datetime
    updated_at: datetime


class TicketResponse(TicketSummary):
    """Full ticket including the message thread."""

    messages: list[TicketMessageResponse]
