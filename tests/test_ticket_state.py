"""
Ticket State Machine Unit Tests

Status derivation, terminal close and ticket ID format, without a database.
"""

import re

import pytest

from app.core.exceptions import Forbidden
from app.models import MessageSender, Ticket, TicketMessage, TicketStatus
from app.services import ticket_service


TICKET_ID_RE = re.compile(r"^[A-HJKMNP-Z]{3}-[A-HJKMNP-Z2-9]{3}-[A-HJKMNP-Z2-9]{4}$")


@pytest.fixture
def ticket() -> Ticket:
    t = Ticket(
        ticket_id="ABC-DEF-GHJK",
        email="a@b.com",
        subject="Help",
        status=TicketStatus.OPEN,
        last_reply_by=MessageSender.USER,
    )
    t.messages.append(TicketMessage(sender=MessageSender.USER, text="help"))
    return t


class TestTicketId:

    def test_format(self):
        for _ in range(200):
            assert TICKET_ID_RE.match(ticket_service.generate_ticket_id())

    def test_no_confusable_characters(self):
        ids = "".join(ticket_service.generate_ticket_id() for _ in range(200))
        assert not set(ids) & set("0O1IL")


class TestReplies:

    def test_user_reply_sets_pending(self, ticket):
        ticket_service.apply_reply(ticket, MessageSender.USER, "any update?")

        assert ticket.status == TicketStatus.PENDING
        assert ticket.last_reply_by == MessageSender.USER

    def test_admin_reply_sets_open(self, ticket):
        ticket_service.apply_reply(ticket, MessageSender.ADMIN, "looking into it")

        assert ticket.status == TicketStatus.OPEN
        assert ticket.last_reply_by == MessageSender.ADMIN

    @pytest.mark.parametrize(
        "senders",
        [
            [MessageSender.USER],
            [MessageSender.ADMIN, MessageSender.USER],
            [MessageSender.USER, MessageSender.USER, MessageSender.ADMIN],
            [MessageSender.ADMIN, MessageSender.ADMIN, MessageSender.USER, MessageSender.ADMIN],
        ],
    )
    def test_status_follows_last_sender(self, ticket, senders):
        for sender in senders:
            ticket_service.apply_reply(ticket, sender, "msg")

        expected = TicketStatus.PENDING if senders[-1] == MessageSender.USER else TicketStatus.OPEN
        assert ticket.status == expected
        assert len(ticket.messages) == 1 + len(senders)

    def test_system_cannot_reply(self, ticket):
        with pytest.raises(ValueError):
            ticket_service.apply_reply(ticket, MessageSender.SYSTEM, "nope")


class TestClose:

    def test_close_appends_system_message(self, ticket):
        assert ticket_service.apply_close(ticket) is True

        assert ticket.status == TicketStatus.CLOSED
        assert ticket.messages[-1].sender == MessageSender.SYSTEM
        assert ticket.messages[-1].text == ticket_service.CLOSED_MESSAGE

    def test_close_is_idempotent(self, ticket):
        ticket_service.apply_close(ticket)
        count = len(ticket.messages)

        assert ticket_service.apply_close(ticket) is False
        assert len(ticket.messages) == count
        assert ticket.status == TicketStatus.CLOSED

    @pytest.mark.parametrize("sender", [MessageSender.USER, MessageSender.ADMIN])
    def test_reply_to_closed_ticket_is_rejected(self, ticket, sender):
        ticket_service.apply_close(ticket)
        count = len(ticket.messages)

        with pytest.raises(Forbidden):
            ticket_service.apply_reply(ticket, sender, "hello?")

        assert len(ticket.messages) == count
        assert ticket.status == TicketStatus.CLOSED
