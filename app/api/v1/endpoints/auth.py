"""
Authentication Routes

Registration, OTP verification, OTP and password login, and logout.

OTP request endpoints answer identically whether or not the identifier
exists, and never carry the code itself. Code checks are rate limited per
client on top of the per-slot wrong-guess cap.
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from app.api.deps import DbSession, get_token_payload
from app.core.config import settings
from app.core.security import create_access_token
from app.middleware.rate_limit import otp_limiter, rate_limit, verify_limiter
from app.models.enums import OTPChannel
from app.schemas.auth import (
    LoginOTPRequest,
    PhoneOTPRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOTPRequest,
    VerifyEmailRequest,
    VerifyLoginOTPRequest,
    VerifyPhoneRequest,
)
from app.schemas.common import MessageResponse
from app.schemas.token import Token
from app.services import auth_service


router = APIRouter(prefix="/auth", tags=["Authentication"])

GENERIC_OTP_MESSAGE = "If the account exists, a code has been sent"


@router.post(
    "/register",
    response_model=RegisterResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account (requires email verification)",
)
@rate_limit(otp_limiter)
async def register(
    request: Request,
    data: RegisterRequest,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> RegisterResponse:
    """
    Create a new account and send the email verification code.

    **Flow:**
    1. Reject with 409 if the phone or email is already registered
    2. Create the account (name defaults to the phone)
    3. Issue a 15-minute email OTP and send it in the background

    The raw code is included in the response only when EXPOSE_OTP_CODES
    is set outside production.
    """
    account, code = await auth_service.register(db, data, background_tasks)
    return RegisterResponse(
        message="Account created! Please verify your email with the code we sent.",
        account_id=account.id,
        otp=code if settings.expose_otp_codes else None,
    )


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    summary="Verify email with OTP code",
)
@rate_limit(verify_limiter)
async def verify_email(request: Request, data: VerifyEmailRequest, db: DbSession) -> MessageResponse:
    await auth_service.verify_channel(db, OTPChannel.EMAIL, data.email, data.code)
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/verify-phone",
    response_model=MessageResponse,
    summary="Verify phone with OTP code",
)
@rate_limit(verify_limiter)
async def verify_phone(request: Request, data: VerifyPhoneRequest, db: DbSession) -> MessageResponse:
    await auth_service.verify_channel(db, OTPChannel.PHONE, data.phone, data.code)
    return MessageResponse(message="Phone verified successfully")


@router.post(
    "/request-phone-otp",
    response_model=MessageResponse,
    summary="Send a phone verification code by SMS",
)
@rate_limit(otp_limiter)
async def request_phone_otp(
    request: Request,
    data: PhoneOTPRequest,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    await auth_service.request_phone_otp(db, data.phone, background_tasks)
    return MessageResponse(message=GENERIC_OTP_MESSAGE)


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    summary="Resend the email verification code",
)
@rate_limit(otp_limiter)
async def resend_otp(
    request: Request,
    data: ResendOTPRequest,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    """
    Resend the verification code.

    Returns 429 with ``Retry-After`` while the resend cooldown is active.
    """
    await auth_service.resend_verification(db, data.email, background_tasks)
    return MessageResponse(message=GENERIC_OTP_MESSAGE)


@router.post(
    "/request-login-otp",
    response_model=MessageResponse,
    summary="Send a login code to an email or phone",
)
@rate_limit(otp_limiter)
async def request_login_otp(
    request: Request,
    data: LoginOTPRequest,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    await auth_service.request_login_otp(db, data.identifier, background_tasks)
    return MessageResponse(message=GENERIC_OTP_MESSAGE)


@router.post(
    "/verify-login-otp",
    response_model=Token,
    summary="Exchange a login code for an access token",
)
@rate_limit(verify_limiter)
async def verify_login_otp(request: Request, data: VerifyLoginOTPRequest, db: DbSession) -> Token:
    access_token = await auth_service.verify_login_otp(db, data.identifier, data.code)
    return Token(access_token=access_token, token_type="bearer")


@router.post(
    "/login",
    response_model=Token,
    summary="Login with email (or phone) and password",
)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DbSession,
) -> Token:
    """
    OAuth2 compatible token login.

    Returns 401 on bad credentials and 403 for unverified accounts.
    """
    account = await auth_service.authenticate_password(db, form_data.username, form_data.password)
    access_token = create_access_token(subject=account.id, identifier=form_data.username)
    return Token(access_token=access_token, token_type="bearer")


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Revoke the current access token",
)
async def logout(
    payload: Annotated[dict, Depends(get_token_payload)],
    db: DbSession,
) -> MessageResponse:
    await auth_service.revoke_token(db, payload)
    return MessageResponse(message="Logged out")
