"""
Swiftdesk Backend - Models Module

This module exports all SQLAlchemy models for the application.
Import Base for Alembic migrations.
"""

from app.core.database import Base

# Enums
from app.models.enums import (
    AccountRole,
    OTPChannel,
    TicketStatus,
    MessageSender,
    LikeTarget,
    ContactStatus,
    ApplicationStatus,
    ChatRole,
)

# Models
from app.models.account import Account
from app.models.revoked_token import RevokedToken
from app.models.ticket import Ticket, TicketMessage
from app.models.post import Post, Comment, CommentReply, Like
from app.models.quiz_attempt import QuizAttempt
from app.models.contact import Contact
from app.models.application import Application
from app.models.conversation import Conversation, ChatMessage

__all__ = [
    # Base
    "Base",
    # Enums
    "AccountRole",
    "OTPChannel",
    "TicketStatus",
    "MessageSender",
    "LikeTarget",
    "ContactStatus",
    "ApplicationStatus",
    "ChatRole",
    # Models
    "Account",
    "RevokedToken",
    "Ticket",
    "TicketMessage",
    "Post",
    "Comment",
    "CommentReply",
    "Like",
    "QuizAttempt",
    "Contact",
    "Application",
    "Conversation",
    "ChatMessage",
]
