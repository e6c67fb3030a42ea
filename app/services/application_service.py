"""
Application Service

Intake applications: document upload, duplicate detection and admin
status review.
"""

import logging
import re
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequest, Conflict, NotFound, conflict_from_integrity_error
from app.models.application import Application
from app.models.enums import ApplicationStatus
from app.schemas.application import ApplicationCreate
from app.services import email_service, notification_service
from app.services.storage_service import LocalStorage


logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("id_number", "email", "phone", "portfolio")


async def _find_duplicate(db: AsyncSession, data: ApplicationCreate) -> Optional[Application]:
    conditions = [Application.email == data.email.lower(), Application.id_number == data.id_number]
    if data.phone:
        conditions.append(Application.phone == data.phone)
    if data.portfolio:
        conditions.append(Application.portfolio == data.portfolio)

    result = await db.execute(select(Application).where(or_(*conditions)).limit(1))
    return result.scalar_one_or_none()


async def _discard(storage: LocalStorage, documents: dict) -> None:
    for document in documents.values():
        await storage.delete(document["id"])


async def submit_application(
    db: AsyncSession,
    data: ApplicationCreate,
    files: dict[str, tuple[bytes, str, Optional[str]]],
    storage: LocalStorage,
    background_tasks: BackgroundTasks,
) -> Application:
    """
    Store uploaded documents and record the application.

    Args:
        files: Slot name to ``(data, filename, content_type)``.

    Raises:
        Conflict: An application already exists for this email, ID,
            phone or portfolio.
        UpstreamFailure: A document could not be stored.

    Documents already stored are deleted again when the submission fails.
    """
    if await _find_duplicate(db, data) is not None:
        raise Conflict("Application already exists for this email or ID")

    documents = {}
    try:
        for slot, (content, filename, content_type) in files.items():
            stored = await storage.upload(content, filename, content_type)
            documents[slot] = {"name": stored.name, "url": stored.url, "id": stored.id}
    except Exception:
        await _discard(storage, documents)
        raise

    application = Application(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        id_number=data.id_number,
        gender=data.gender,
        email=data.email.lower(),
        phone=data.phone,
        location=data.location,
        qualification=data.qualification,
        experience=data.experience,
        current_role=data.current_role,
        portfolio=data.portfolio,
        consent=True,
        documents=documents,
        status=ApplicationStatus.PENDING,
    )
    db.add(application)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        await _discard(storage, documents)
        raise conflict_from_integrity_error(e, UNIQUE_FIELDS, message="Duplicate {field}")
    except Exception:
        await db.rollback()
        await _discard(storage, documents)
        raise

    logger.info("Application %s submitted with %d documents", application.id, len(documents))
    notification_service.schedule_email(
        background_tasks,
        email_service.application_received_email(application.email, application.first_name, application.id),
    )
    return application


async def get_latest(db: AsyncSession) -> Optional[Application]:
    result = await db.execute(
        select(Application).order_by(Application.created_at.desc(), Application.id.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def search(db: AsyncSession, query: str) -> Application:
    """
    Find an application by email or 13-digit ID number.

    Raises:
        BadRequest: The query is neither an email nor an ID number.
        NotFound: No application matches.
    """
    query = query.strip()
    if "@" in query:
        condition = Application.email == query.lower()
    elif re.fullmatch(r"\d{13}", query):
        condition = Application.id_number == query
    else:
        raise BadRequest("Search by email or 13-digit ID number")

    result = await db.execute(select(Application).where(condition))
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFound("Application not found")
    return application


async def list_applications(
    db: AsyncSession,
    status: Optional[ApplicationStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Application], int]:
    query = select(Application)
    count_query = select(func.count(Application.id))
    if status is not None:
        query = query.where(Application.status == status)
        count_query = count_query.where(Application.status == status)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(Application.created_at.desc(), Application.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_status(db: AsyncSession, application_id: int, status: ApplicationStatus) -> Application:
    result = await db.execute(select(Application).where(Application.id == application_id))
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFound("Application not found")

    application.status = status
    await db.commit()
    logger.info("Application %s marked %s", application.id, status.value)
    return application
