"""
Auth Schemas

Pydantic models for registration and OTP request/response validation.
"""

import uuid
from typing import Optional

from pydantic import EmailStr, Field

from app.schemas.common import ApiModel, NonBlankStr

OTP_PATTERN = r"^\d{6}$"


class RegisterRequest(ApiModel):
    """Schema for account registration."""

    phone: str = Field(..., min_length=7, max_length=32, description="Phone number")
    email: EmailStr = Field(..., description="Email address")
    name: Optional[str] = Field(None, max_length=255, description="Display name (defaults to phone)")
    password: Optional[str] = Field(None, min_length=8, description="Optional password for password login")


class RegisterResponse(ApiModel):
    """Registration result; ``otp`` is only set when EXPOSE_OTP_CODES is on outside production."""

    message: str
    account_id: uuid.UUID
    requires_verification: bool = True
    otp: Optional[str] = None


class VerifyEmailRequest(ApiModel):
    """Schema for email verification request."""

    email: EmailStr = Field(..., description="Account email address")
    code: str = Field(..., pattern=OTP_PATTERN, description="6-digit OTP code")


class VerifyPhoneRequest(ApiModel):
    """Schema for phone verification request."""

    phone: NonBlankStr = Field(..., description="Account phone number")
    code: str = Field(..., pattern=OTP_PATTERN, description="6-digit OTP code")


class PhoneOTPRequest(ApiModel):
    phone: NonBlankStr


class ResendOTPRequest(ApiModel):
    """Schema for resend verification request."""

    email: EmailStr = Field(..., description="Account email address")


class LoginOTPRequest(ApiModel):
    """Identifier is an email (contains ``@``) or a phone number."""

    identifier: NonBlankStr


class VerifyLoginOTPRequest(ApiModel):
    identifier: NonBlankStr
    code: str = Field(..., pattern=OTP_PATTERN, description="6-digit OTP code")

