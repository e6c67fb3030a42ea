"""
Account Schemas

Pydantic models for profile responses and updates.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.enums import AccountRole
from app.schemas.common import ApiModel


class AccountResponse(ApiModel):
    """Schema for account response (excludes credentials and OTP slots)."""

    id: uuid.UUID
    phone: str
    email: str
    name: str
    role: AccountRole
    avatar_url: Optional[str] = None
    is_verified: bool
    created_at: datetime


class AccountUpdate(ApiModel):
    """Schema for updating the profile."""

    name: Optional[str] = Field(None, min_length=1, max_length=255, description="New display name")
    avatar_url: Optional[str] = Field(None, max_length=512, description="New avatar URL")


class AuthorSummary(ApiModel):
    """Public view of an account embedded in posts and comments."""

    id: uuid.UUID
    name: str
    avatar_url: Optional[str] = None
