"""
Contact Schemas

Pydantic models for contact form submissions.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.models.enums import ContactStatus
from app.schemas.common import ApiModel


class ContactCreate(ApiModel):
    """Schema for the public contact form."""

    name: str = Field(..., min_length=2, max_length=80)
    email: EmailStr
    subject: str = Field(default="", max_length=120)
    message: str = Field(..., min_length=10, max_length=2000)


class ContactCreated(ApiModel):
    message: str
    id: int


class ContactResponse(ApiModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: ContactStatus
    created_at: datetime
    updated_at: datetime


class ContactStatusUpdate(ApiModel):
    status: ContactStatus
