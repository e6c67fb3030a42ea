"""
Security Utilities

Password hashing (bcrypt), keyed digests for one-time codes and JWT
session tokens (python-jose).

Session tokens carry ``sub`` (account ID), ``iat``, ``exp`` and a random
``jti`` used to revoke a single token on logout.
"""

import hashlib
import hmac
import uuid
from datetime import timedelta
from typing import Any, Optional

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings
from app.core.utils import utc_now


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False for a wrong password and for a stored value that is not a bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def digest_code(code: str) -> str:
    """Keyed SHA-256 digest of a one-time code; codes are never stored in clear."""
    return hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        code.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def codes_match(code: str, stored_digest: str) -> bool:
    return hmac.compare_digest(digest_code(code), stored_digest)


def create_access_token(
    subject: Any,
    identifier: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a signed session token.

    Args:
        subject: Account ID.
        identifier: Email or phone the session was opened with.
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    issued_at = utc_now()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    if identifier:
        claims["identifier"] = identifier
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Claims of a correctly signed, unexpired token, else None."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
