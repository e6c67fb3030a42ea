"""
User Routes

Endpoints for the current account's profile.
"""

from typing import Annotated

from fastapi import APIRouter, File, UploadFile

from app.api.deps import CurrentUser, DbSession
from app.core.exceptions import BadRequest
from app.models.account import Account
from app.schemas.account import AccountResponse, AccountUpdate
from app.services.storage_service import IMAGE_CONTENT_TYPES, get_storage


router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/me",
    response_model=AccountResponse,
    summary="Get current user profile",
)
async def get_me(current_user: CurrentUser) -> Account:
    """
    Get the currently logged-in account's profile.

    This endpoint requires authentication via Bearer token.
    """
    return current_user


@router.patch(
    "/me",
    response_model=AccountResponse,
    summary="Update current user profile",
)
async def update_me(
    account_update: AccountUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> Account:
    """
    Update the current account's name and/or avatar URL.

    Only provided fields will be updated.
    """
    update_data = account_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(current_user, field, value.strip() if isinstance(value, str) else value)

    await db.commit()
    return current_user


@router.post(
    "/me/avatar",
    response_model=AccountResponse,
    summary="Upload a new avatar image",
)
async def upload_avatar(
    image: Annotated[UploadFile, File(description="Avatar image")],
    current_user: CurrentUser,
    db: DbSession,
) -> Account:
    if image.content_type not in IMAGE_CONTENT_TYPES:
        raise BadRequest("Avatar must be a JPEG, PNG, GIF or WebP image")

    storage = get_storage()
    stored = await storage.upload(await storage.read(image), image.filename or "avatar", image.content_type)
    current_user.avatar_url = stored.url
    await db.commit()
    return current_user
