"""
Token Schemas

Pydantic models for JWT token handling.
"""

from typing import Optional

from pydantic import BaseModel


class Token(BaseModel):
    """Schema for token response (OAuth2 field names)."""

    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    """Schema for decoded token payload."""

    sub: str  # Account ID
    exp: int  # Expiration timestamp
    iat: int
    jti: str
    identifier: Optional[str] = None
