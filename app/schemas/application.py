"""
Application Schemas

Pydantic models for intake applications. The submission arrives as a
multipart form and is validated with ``ApplicationCreate``.
"""

import re
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from app.models.enums import ApplicationStatus
from app.schemas.common import ApiModel

DOCUMENT_SLOTS = ("cv", "doc1", "doc2", "doc3", "doc4", "doc5")


def is_valid_sa_id(id_number: str, today: Optional[date] = None) -> bool:
    """
    Validate a 13-digit South African ID number.

    Checks the YYMMDD birth date (two-digit years up to the current year
    are 20xx, later ones 19xx), the citizenship digit (0 or 1) and the
    Luhn checksum.
    """
    if not re.fullmatch(r"\d{13}", id_number or ""):
        return False

    today = today or date.today()
    year = int(id_number[0:2])
    month = int(id_number[2:4])
    day = int(id_number[4:6])
    full_year = 2000 + year if year <= today.year % 100 else 1900 + year
    try:
        date(full_year, month, day)
    except ValueError:
        return False

    if id_number[10] not in ("0", "1"):
        return False

    total = 0
    for position, char in enumerate(reversed(id_number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


class ApplicationCreate(ApiModel):
    """Form fields of an application; ``consent`` arrives as the string ``"true"``."""

    first_name: str = Field(..., min_length=2, max_length=120)
    last_name: str = Field(..., min_length=2, max_length=120)
    id_number: str
    gender: Optional[str] = Field(None, max_length=32)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=32)
    location: str = Field(..., min_length=2, max_length=255)
    qualification: str = Field(..., min_length=2, max_length=255)
    experience: str = Field(..., min_length=1)
    current_role: Optional[str] = Field(None, max_length=255)
    portfolio: Optional[str] = Field(None, max_length=512)
    consent: Literal["true"]

    @field_validator("id_number")
    @classmethod
    def check_id_number(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_sa_id(value):
            raise ValueError("Invalid South African ID")
        return value

    @field_validator("phone", "portfolio", "current_role", "gender", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class DocumentRef(ApiModel):
    name: str
    url: str
    id: str


class ApplicationSubmitted(ApiModel):
    message: str
    application_id: int


class ApplicationResponse(ApiModel):
    id: int
    first_name: str
    last_name: str
    id_number: str
    gender: Optional[str] = None
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[str] = None
    current_role: Optional[str] = None
    portfolio: Optional[str] = None
    consent: bool
    documents: dict[str, DocumentRef]
    status: ApplicationStatus
    created_at: datetime
    updated_at: datetime


class ApplicationStatusUpdate(ApiModel):
    status: ApplicationStatus
