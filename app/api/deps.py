"""
API Dependencies

Reusable dependencies for API routes including authentication.
"""

import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import Forbidden, Unauthorized
from app.core.security import decode_access_token
from app.models.account import Account
from app.services import auth_service


# OAuth2 scheme for token extraction from Authorization header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def _resolve_account(db: AsyncSession, token: Optional[str]) -> tuple[Optional[Account], Optional[dict]]:
    """Validate a bearer token and load its account. Returns (None, None) on any failure."""
    if not token:
        return None, None

    # Decode the JWT token (signature and expiry)
    payload = decode_access_token(token)
    if payload is None:
        return None, None

    account_id_str: Optional[str] = payload.get("sub")
    if account_id_str is None:
        return None, None

    try:
        account_id = uuid.UUID(account_id_str)
    except ValueError:
        return None, None

    if await auth_service.is_token_revoked(db, payload.get("jti")):
        return None, None

    account = await auth_service.get_account(db, account_id)
    if account is None:
        return None, None

    return account, payload


async def get_token_payload(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Validated token payload of the current session.

    Raises:
        Unauthorized: Missing, malformed, badly signed, expired or revoked
            token, or a subject that no longer exists.
    """
    account, payload = await _resolve_account(db, token)
    if account is None or payload is None:
        raise Unauthorized()

    request.state.user = account
    return payload


async def get_current_user(
    request: Request,
    payload: Annotated[dict, Depends(get_token_payload)],
) -> Account:
    """
    Dependency to get the current authenticated account.

    The account is also attached to ``request.state.user`` for rate
    limiting and logging.
    """
    return request.state.user


async def get_current_user_optional(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[Account]:
    """
    Dependency to optionally get the current authenticated account.

    Similar to get_current_user but returns None instead of raising
    when no valid token is provided.
    """
    account, _ = await _resolve_account(db, token)
    if account is not None:
        request.state.user = account
    return account


async def get_current_admin(
    current_user: Annotated[Account, Depends(get_current_user)],
) -> Account:
    """
    Dependency that requires an admin account.

    Raises:
        Forbidden: 403 if the account is not an admin.
    """
    if not current_user.is_admin:
        raise Forbidden("Admin access required")
    return current_user


CurrentUser = Annotated[Account, Depends(get_current_user)]
OptionalUser = Annotated[Optional[Account], Depends(get_current_user_optional)]
AdminUser = Annotated[Account, Depends(get_current_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
