"""
Database Enums

Python Enums that map to database ENUM types.
"""

import enum


def enum_values(enum_cls) -> list[str]:
    """Persist enum values (not member names) in the database."""
    return [member.value for member in enum_cls]


class AccountRole(str, enum.Enum):
    """Account role enumeration."""
    USER = "user"
    ADMIN = "admin"


class OTPChannel(str, enum.Enum):
    """Delivery channel of a one-time code; names the Account OTP slot."""
    EMAIL = "email"
    PHONE = "phone"


class TicketStatus(str, enum.Enum):
    """Ticket status enumeration."""
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"


class MessageSender(str, enum.Enum):
    """Author of a ticket message."""
    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"


class LikeTarget(str, enum.Enum):
    """Kind of entity a like belongs to."""
    POST = "post"
    COMMENT = "comment"
    REPLY = "reply"


class ContactStatus(str, enum.Enum):
    """Contact inbox status enumeration."""
    NEW = "new"
    READ = "read"
    REPLIED = "replied"


class ApplicationStatus(str, enum.Enum):
    """Application review status enumeration."""
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"
    SECOND_INTAKE = "SECOND_INTAKE"


class ChatRole(str, enum.Enum):
    """Role of a chat assistant message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
