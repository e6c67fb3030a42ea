"""
Auth Service

Registration, OTP verification, login and session revocation.

Failures on OTP flows are deliberately generic: an unknown identifier and
a wrong code produce the same ``InvalidCode`` error.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidCode,
    TooManyRequests,
    Unauthorized,
    conflict_from_integrity_error,
)
from app.core.security import create_access_token, hash_password, verify_password
from app.core.utils import as_utc, utc_now
from app.models.account import Account
from app.models.enums import OTPChannel
from app.models.revoked_token import RevokedToken
from app.schemas.auth import RegisterRequest
from app.services import email_service, notification_service, otp_service


logger = logging.getLogger(__name__)


def normalize_phone(phone: str) -> str:
    return "".join(phone.split())


def channel_for(identifier: str) -> OTPChannel:
    """An identifier containing ``@`` is an email, anything else a phone."""
    return OTPChannel.EMAIL if "@" in identifier else OTPChannel.PHONE


async def get_account(db: AsyncSession, account_id: uuid.UUID) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def find_by_identifier(db: AsyncSession, identifier: str) -> Optional[Account]:
    """Look up an account by email or phone."""
    identifier = identifier.strip()
    if channel_for(identifier) == OTPChannel.EMAIL:
        condition = Account.email == identifier.lower()
    else:
        condition = Account.phone == normalize_phone(identifier)

    result = await db.execute(select(Account).where(condition))
    return result.scalar_one_or_none()


def _dispatch_otp(
    background_tasks: BackgroundTasks,
    account: Account,
    channel: OTPChannel,
    code: str,
    ttl_minutes: int,
    login: bool = False,
) -> None:
    if channel == OTPChannel.PHONE:
        notification_service.schedule_sms(
            background_tasks, email_service.otp_sms(account.phone, code, ttl_minutes)
        )
    elif login:
        notification_service.schedule_email(
            background_tasks, email_service.login_code_email(account.email, code, ttl_minutes)
        )
    else:
        notification_service.schedule_email(
            background_tasks,
            email_service.verification_email(account.email, code, account.name, ttl_minutes),
        )


# ============== Registration & Verification ==============

async def register(
    db: AsyncSession,
    data: RegisterRequest,
    background_tasks: BackgroundTasks,
) -> tuple[Account, str]:
    """
    Create an account and send its email verification code.

    Returns:
        tuple: The new account and the plain OTP (echoed only when EXPOSE_OTP_CODES is set).

    Raises:
        Conflict: If the phone or email is already registered.
    """
    email = data.email.lower()
    phone = normalize_phone(data.phone)

    result = await db.execute(
        select(Account).where(or_(Account.phone == phone, Account.email == email))
    )
    existing = result.scalars().first()
    if existing is not None:
        field = "phone" if existing.phone == phone else "email"
        raise Conflict(f"{field} already registered", field=field)

    account = Account(
        phone=phone,
        email=email,
        name=(data.name or "").strip() or phone,
        password_hash=hash_password(data.password) if data.password else None,
        is_verified=False,
    )
    code = otp_service.issue_otp(account, OTPChannel.EMAIL, settings.OTP_EXPIRE_MINUTES)

    db.add(account)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise conflict_from_integrity_error(e, ["phone", "email"])

    logger.info("Registered account %s", account.id)
    _dispatch_otp(background_tasks, account, OTPChannel.EMAIL, code, settings.OTP_EXPIRE_MINUTES)
    return account, code


async def verify_channel(
    db: AsyncSession,
    channel: OTPChannel,
    identifier: str,
    code: str,
) -> Account:
    """
    Consume a verification code on ``channel``.

    Raises:
        InvalidCode: Unknown account, empty slot, wrong or expired code.
    """
    account = await find_by_identifier(db, identifier)
    if account is None:
        raise InvalidCode()

    verified = otp_service.consume_otp(account, channel, code)
    # Persist the wrong-guess count before failing
    await db.commit()
    if not verified:
        raise InvalidCode()
    return account


async def request_phone_otp(
    db: AsyncSession,
    phone: str,
    background_tasks: BackgroundTasks,
) -> None:
    """Issue a phone verification code by SMS. Unknown phones are ignored."""
    account = await find_by_identifier(db, phone)
    if account is None or channel_for(phone) != OTPChannel.PHONE:
        return

    code = otp_service.issue_otp(account, OTPChannel.PHONE, settings.LOGIN_OTP_EXPIRE_MINUTES)
    await db.commit()
    _dispatch_otp(background_tasks, account, OTPChannel.PHONE, code, settings.LOGIN_OTP_EXPIRE_MINUTES)


async def resend_verification(
    db: AsyncSession,
    email: str,
    background_tasks: BackgroundTasks,
) -> None:
    """
    Re-issue the email verification code, subject to the resend cooldown.

    Unknown or already verified accounts are ignored.

    Raises:
        TooManyRequests: While the cooldown is active.
    """
    account = await find_by_identifier(db, email)
    if account is None or account.is_verified:
        return

    wait = otp_service.resend_wait_seconds(
        account, OTPChannel.EMAIL, settings.OTP_RESEND_COOLDOWN_SECONDS
    )
    if wait > 0:
        raise TooManyRequests(
            f"Please wait {wait} seconds before requesting a new code",
            headers={"Retry-After": str(wait)},
            cooldownSeconds=wait,
        )

    code = otp_service.issue_otp(account, OTPChannel.EMAIL, settings.OTP_EXPIRE_MINUTES)
    await db.commit()
    _dispatch_otp(background_tasks, account, OTPChannel.EMAIL, code, settings.OTP_EXPIRE_MINUTES)


# ============== Login ==============

async def request_login_otp(
    db: AsyncSession,
    identifier: str,
    background_tasks: BackgroundTasks,
) -> None:
    """
    Issue a login code on the identifier's channel, overwriting any pending one.

    The code only ever travels to the account's own email or phone, and
    unknown identifiers are ignored so callers can respond identically.
    """
    account = await find_by_identifier(db, identifier)
    if account is None:
        logger.info("Login code requested for unknown identifier")
        return

    channel = channel_for(identifier)
    code = otp_service.issue_otp(account, channel, settings.LOGIN_OTP_EXPIRE_MINUTES)
    await db.commit()
    _dispatch_otp(
        background_tasks, account, channel, code, settings.LOGIN_OTP_EXPIRE_MINUTES, login=True
    )


async def verify_login_otp(db: AsyncSession, identifier: str, code: str) -> str:
    """
    Exchange a login code for a session token.

    Returns:
        str: Signed JWT carrying sub, identifier, iat, exp and jti.
    """
    identifier = identifier.strip()
    channel = channel_for(identifier)
    account = await verify_channel(db, channel, identifier, code)
    return create_access_token(subject=account.id, identifier=identifier)


async def authenticate_password(db: AsyncSession, identifier: str, password: str) -> Account:
    """
    Password login.

    Raises:
        Unauthorized: Unknown account, no password set, or wrong password.
        Forbidden: The account has not been verified yet.
    """
    account = await find_by_identifier(db, identifier)
    if (
        account is None
        or not account.password_hash
        or not verify_password(password, account.password_hash)
    ):
        raise Unauthorized("Incorrect email or password")

    if not account.is_verified:
        raise Forbidden("Please verify your account before logging in")

    return account


# ============== Revocation ==============

async def revoke_token(db: AsyncSession, payload: dict) -> None:
    """Record the token's ``jti`` as revoked until the token itself expires."""
    jti = payload.get("jti")
    if not jti:
        return

    result = await db.execute(select(RevokedToken).where(RevokedToken.jti == jti))
    if result.scalar_one_or_none() is not None:
        return

    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    db.add(RevokedToken(jti=jti, expires_at=expires_at))
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent logout with the same token
        await db.rollback()


async def is_token_revoked(db: AsyncSession, jti: Optional[str]) -> bool:
    if not jti:
        return False
    result = await db.execute(select(RevokedToken).where(RevokedToken.jti == jti))
    record = result.scalar_one_or_none()
    return record is not None and as_utc(record.expires_at) > utc_now()


async def cleanup_expired_revocations(db: AsyncSession) -> int:
    """
    Remove revocation records whose tokens have expired anyway.

    Returns:
        int: Number of records deleted.
    """
    result = await db.execute(
        delete(RevokedToken).where(RevokedToken.expires_at < utc_now())
    )
    await db.commit()
    return result.rowcount or 0
