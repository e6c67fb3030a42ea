"""
OTP Service

Handles OTP generation, storage on the account's per-channel slot, and
single-use verification with a cap on wrong guesses.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

from app.core.config import settings
from app.core.security import codes_match, digest_code
from app.core.utils import as_utc, utc_now
from app.models.account import Account
from app.models.enums import OTPChannel


def generate_otp() -> str:
    """Generate a uniformly random 6-digit OTP code (100000-999999)."""
    return str(secrets.randbelow(900000) + 100000)


def _slot_fields(channel: OTPChannel) -> tuple[str, str, str, str]:
    prefix = OTPChannel(channel).value
    return (
        f"{prefix}_otp_hash",
        f"{prefix}_otp_expires_at",
        f"{prefix}_otp_sent_at",
        f"{prefix}_otp_attempts",
    )


def issue_otp(
    account: Account,
    channel: OTPChannel,
    ttl_minutes: int,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a fresh OTP on the account's slot for ``channel``.

    Any pending code on the same channel is overwritten and the wrong-guess
    count starts over. Only the digest is stored; the caller is responsible
    for committing the session.

    Returns:
        str: The plain text OTP code (to be dispatched).
    """
    now = now or utc_now()
    hash_field, expires_field, sent_field, attempts_field = _slot_fields(channel)

    plain_otp = generate_otp()
    setattr(account, hash_field, digest_code(plain_otp))
    setattr(account, expires_field, now + timedelta(minutes=ttl_minutes))
    setattr(account, sent_field, now)
    setattr(account, attempts_field, 0)

    return plain_otp


def clear_otp(account: Account, channel: OTPChannel) -> None:
    hash_field, expires_field, _, attempts_field = _slot_fields(channel)
    setattr(account, hash_field, None)
    setattr(account, expires_field, None)
    setattr(account, attempts_field, 0)


def consume_otp(
    account: Account,
    channel: OTPChannel,
    code: str,
    now: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
) -> bool:
    """
    Verify and consume an OTP code.

    A code is valid only if the slot holds a digest, the digest matches
    and ``now`` is before the expiry. On success the slot is cleared (so
    the code cannot be replayed) and the account is marked verified.

    A wrong code counts against the slot; after ``max_attempts`` wrong
    codes (OTP_MAX_ATTEMPTS by default) the slot is cleared and a new code
    must be requested. The caller commits the count even on failure.

    Returns:
        bool: True if the code was valid and has been consumed.
    """
    now = now or utc_now()
    max_attempts = max_attempts or settings.OTP_MAX_ATTEMPTS
    hash_field, expires_field, _, attempts_field = _slot_fields(channel)

    stored_digest = getattr(account, hash_field)
    expires_at = as_utc(getattr(account, expires_field))

    if not stored_digest or expires_at is None:
        return False
    if now >= expires_at:
        return False
    if not codes_match(code, stored_digest):
        attempts = (getattr(account, attempts_field) or 0) + 1
        setattr(account, attempts_field, attempts)
        if attempts >= max_attempts:
            clear_otp(account, channel)
        return False

    clear_otp(account, channel)
    account.is_verified = True
    return True


def resend_wait_seconds(
    account: Account,
    channel: OTPChannel,
    cooldown_seconds: int,
    now: Optional[datetime] = None,
) -> int:
    """
    Seconds left before another code may be sent on ``channel``.

    Returns:
        int: 0 when a new code may be sent now.
    """
    now = now or utc_now()
    sent_field = _slot_fields(channel)[2]
    sent_at = as_utc(getattr(account, sent_field))
    if sent_at is None:
        return 0

    elapsed = (now - sent_at).total_seconds()
    remaining = int(cooldown_seconds - elapsed)
    return max(remaining, 0)
