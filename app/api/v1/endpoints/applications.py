"""
Application Routes

Public intake form with document uploads, plus admin review.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from app.api.deps import AdminUser, DbSession
from app.core.exceptions import BadRequest
from app.models.application import Application
from app.models.enums import ApplicationStatus
from app.schemas.application import (
    DOCUMENT_SLOTS,
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
    ApplicationSubmitted,
)
from app.schemas.common import Page
from app.services import application_service
from app.services.storage_service import get_storage


router = APIRouter(prefix="/applications", tags=["Applications"])
admin_router = APIRouter(prefix="/admin/applications", tags=["Applications"])

MAX_PAGE_SIZE = 100


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg"))
    # Custom validator messages arrive as "Value error, <message>"
    message = message.removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


@router.post(
    "/apply",
    response_model=ApplicationSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an application (multipart form)",
)
async def apply(
    request: Request,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> ApplicationSubmitted:
    """
    Submit an intake application.

    Text fields are sent as form fields (camelCase or snake_case);
    optional documents go in the ``cv`` and ``doc1``..``doc5`` file fields.
    """
    form = await request.form()

    fields = {key: value for key, value in form.items() if isinstance(value, str)}
    try:
        data = ApplicationCreate.model_validate(fields)
    except ValidationError as e:
        raise BadRequest(_validation_message(e))

    storage = get_storage()
    files: dict[str, tuple[bytes, str, Optional[str]]] = {}
    for slot in DOCUMENT_SLOTS:
        upload = form.get(slot)
        if isinstance(upload, UploadFile) and upload.filename:
            files[slot] = (await storage.read(upload), upload.filename, upload.content_type)

    application = await application_service.submit_application(
        db, data, files, storage, background_tasks
    )
    return ApplicationSubmitted(
        message="Application submitted successfully",
        application_id=application.id,
    )


@router.get(
    "/latest",
    response_model=Optional[ApplicationResponse],
    summary="Most recent application",
)
async def latest(db: DbSession) -> Optional[Application]:
    return await application_service.get_latest(db)


@router.get(
    "/search",
    response_model=ApplicationResponse,
    summary="Find an application by email or ID number",
)
async def search(
    db: DbSession,
    query: Annotated[str, Query(min_length=3)],
) -> Application:
    return await application_service.search(db, query)


# ============== Admin ==============

@admin_router.get("", response_model=Page[ApplicationResponse])
async def list_applications(
    admin: AdminUser,
    db: DbSession,
    status_filter: Annotated[Optional[ApplicationStatus], Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
) -> Page[ApplicationResponse]:
    applications, total = await application_service.list_applications(db, status_filter, page, limit)
    return Page[ApplicationResponse].build(
        [ApplicationResponse.model_validate(a) for a in applications], total, page, limit
    )


@admin_router.put("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    admin: AdminUser,
    db: DbSession,
) -> Application:
    return await application_service.update_status(db, application_id, data.status)
