"""
Revoked Token Model

Persisted session-token revocations keyed by the token's ``jti``.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class RevokedToken(Base):
    """
    A revoked session token.

    ``expires_at`` mirrors the token's own expiry: once it passes the
    token is unusable anyway and the row can be purged.
    """

    __tablename__ = "revoked_tokens"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    jti: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        index=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RevokedToken(jti={self.jti})>"
