"""
Contact Routes

Public contact form and the admin inbox.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request, status

from app.api.deps import AdminUser, DbSession
from app.core.utils import client_ip
from app.models.contact import Contact
from app.models.enums import ContactStatus
from app.schemas.common import MessageResponse, Page
from app.schemas.contact import ContactCreate, ContactCreated, ContactResponse, ContactStatusUpdate
from app.services import contact_service


router = APIRouter(prefix="/contact", tags=["Contact"])

MAX_PAGE_SIZE = 100


@router.post("", response_model=ContactCreated, status_code=status.HTTP_201_CREATED)
async def submit_contact(
    request: Request,
    data: ContactCreate,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> ContactCreated:
    contact = await contact_service.create_contact(
        db,
        data,
        background_tasks,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return ContactCreated(message="Message received", id=contact.id)


@router.get("", response_model=Page[ContactResponse])
async def list_contacts(
    admin: AdminUser,
    db: DbSession,
    status_filter: Annotated[Optional[ContactStatus], Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
) -> Page[ContactResponse]:
    contacts, total = await contact_service.list_contacts(db, status_filter, page, limit)
    return Page[ContactResponse].build(
        [ContactResponse.model_validate(c) for c in contacts], total, page, limit
    )


@router.put("/{contact_id}/status", response_model=ContactResponse)
async def update_contact_status(
    contact_id: int,
    data: ContactStatusUpdate,
    admin: AdminUser,
    db: DbSession,
) -> Contact:
    return await contact_service.update_status(db, contact_id, data.status)


@router.delete("/{contact_id}", response_model=MessageResponse)
async def delete_contact(contact_id: int, admin: AdminUser, db: DbSession) -> MessageResponse:
    await contact_service.delete_contact(db, contact_id)
    return MessageResponse(message="Deleted")
