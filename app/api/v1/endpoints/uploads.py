"""
Upload Routes

Image uploads for posts and comments.
"""

from typing import Annotated

from fastapi import APIRouter, File, UploadFile, status

from app.api.deps import CurrentUser
from app.core.exceptions import BadRequest
from app.schemas.upload import UploadResponse
from app.services.storage_service import IMAGE_CONTENT_TYPES, get_storage


router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("/image", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: Annotated[UploadFile, File(description="JPEG, PNG, GIF or WebP image")],
    current_user: CurrentUser,
) -> UploadResponse:
    if image.content_type not in IMAGE_CONTENT_TYPES:
        raise BadRequest("Only JPEG, PNG, GIF or WebP images are allowed")

    storage = get_storage()
    stored = await storage.upload(await storage.read(image), image.filename or "image", image.content_type)
    return UploadResponse(
        url=stored.url,
        id=stored.id,
        name=stored.name,
        content_type=stored.content_type,
        size=stored.size,
    )
