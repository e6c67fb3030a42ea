"""
Application Model

Intake applications with uploaded supporting documents.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.utils import utc_now
from app.models.enums import ApplicationStatus, enum_values


class Application(Base):
    """
    Application model.

    Attributes:
        id_number: 13-digit South African ID number (unique).
        email: Applicant email (unique).
        phone: Optional phone (unique when present).
        portfolio: Optional portfolio URL (unique when present).
        documents: Map of slot name (cv, doc1..doc5) to {name, url, id}.
        status: Review status set by admins.
    """

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    id_number: Mapped[str] = mapped_column(
        String(13),
        unique=True,
        index=True,
        nullable=False,
    )
    gender: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(32),
        unique=True,
        nullable=True,
    )
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    qualification: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    experience: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    current_role: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    portfolio: Mapped[Optional[str]] = mapped_column(
        String(512),
        unique=True,
        nullable=True,
    )
    consent: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    documents: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", create_constraint=True, values_callable=enum_values),
        default=ApplicationStatus.PENDING,
        index=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        index=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, email={self.email}, status={self.status})>"
