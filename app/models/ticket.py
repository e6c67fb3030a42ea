"""
Ticket Models

Support tickets and their append-only message thread.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.core.utils import utc_now
from app.models.enums import MessageSender, TicketStatus, enum_values


class Ticket(Base):
    """
    Support ticket.

    ``status`` is derived from who spoke last: PENDING while waiting on
    support, OPEN while waiting on the submitter, CLOSED is terminal.

    Attributes:
        id: Integer primary key (internal).
        ticket_id: Public, human-typeable ID used for tracking.
        email: Submitter email.
        subject: Ticket subject.
        status: OPEN, PENDING or CLOSED.
        last_reply_by: Sender of the most recent message.
    """

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    ticket_id: Mapped[str] = mapped_column(
        String(16),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    subject: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    status: Mapped[TicketStatus] = mapped_column(
        Enum(TicketStatus, name="ticket_status", create_constraint=True, values_callable=enum_values),
        default=TicketStatus.OPEN,
        index=True,
        nullable=False,
    )
    last_reply_by: Mapped[MessageSender] = mapped_column(
        Enum(MessageSender, name="message_sender", create_constraint=True, values_callable=enum_values),
        default=MessageSender.USER,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        index=True,
        nullable=False,
    )

    # Relationships
    messages: Mapped[list["TicketMessage"]] = relationship(
        "TicketMessage",
        back_populates="ticket",
        order_by="TicketMessage.id",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Ticket(ticket_id={self.ticket_id}, status={self.status})>"


class TicketMessage(Base):
    """A single message in a ticket thread."""

    __tablename__ = "ticket_messages"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    ticket_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sender: Mapped[MessageSender] = mapped_column(
        Enum(MessageSender, name="message_sender", create_constraint=True, values_callable=enum_values),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    ticket: Mapped["Ticket"] = relationship(
        "Ticket",
        back_populates="messages",
    )

    def __repr__(self) -> str:
        return f"<TicketMessage(id={self.id}, sender={self.sender})>"
