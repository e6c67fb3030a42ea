"""
Swiftdesk Backend - Schemas Module

Pydantic models for request/response validation.
"""

from app.schemas.common import ApiModel, MessageResponse, Page, Pagination
from app.schemas.token import Token, TokenPayload
from app.schemas.account import AccountResponse, AccountUpdate, AuthorSummary
from app.schemas.ticket import (
    TicketCreate,
    TicketReply,
    TicketMessageResponse,
    TicketSummary,
    TicketResponse,
)

__all__ = [
    # Common
    "ApiModel",
    "MessageResponse",
    "Page",
    "Pagination",
    # Token
    "Token",
    "TokenPayload",
    # Account
    "AccountResponse",
    "AccountUpdate",
    "AuthorSummary",
    # Ticket
    "TicketCreate",
    "TicketReply",
    "TicketMessageResponse",
    "TicketSummary",
    "TicketResponse",
]
