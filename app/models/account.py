"""
Account Model

Core identity entity with OTP challenge slots and role management.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.utils import utc_now
from app.models.enums import AccountRole, enum_values


class Account(Base):
    """
    Account model for end users and support staff.

    Each channel (email, phone) has a single OTP slot: issuing a new code
    overwrites the pending one, consuming it clears the slot, and too many
    wrong guesses clear it as well.

    Attributes:
        id: UUID primary key for public-facing identification.
        phone: Unique phone number.
        email: Unique email address (lower-cased).
        name: Display name, defaults to the phone number.
        role: USER or ADMIN.
        password_hash: Optional bcrypt hash when password login is used.
        avatar_url: Profile picture URL.
        is_verified: Set once any channel's OTP has been consumed.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    phone: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[AccountRole] = mapped_column(
        Enum(AccountRole, name="account_role", create_constraint=True, values_callable=enum_values),
        default=AccountRole.USER,
        nullable=False,
    )
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Email OTP slot
    email_otp_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    email_otp_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    email_otp_sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    email_otp_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Phone OTP slot
    phone_otp_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    phone_otp_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    phone_otp_sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    phone_otp_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, email={self.email}, role={self.role})>"
