"""
Error Taxonomy

Domain errors raised by services and dependencies, plus the exception
handlers that render every failure as ``{"message": ...}``.
"""

import logging
import re
from typing import Any, Dict, Iterable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class AppError(StarletteHTTPException):
    """
    Base class for errors with a fixed HTTP status.

    ``extra`` carries additional JSON fields for the response body.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **extra: Any,
    ):
        super().__init__(
            status_code=type(self).status_code,
            detail=message or self.default_message,
            headers=headers,
        )
        self.extra = extra

    @property
    def message(self) -> str:
        return self.detail


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class InvalidCode(BadRequest):
    default_message = "Invalid or expired code"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"}, **extra)


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class TooManyRequests(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded. Please try again later."


class UpstreamFailure(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def conflict_from_integrity_error(
    exc: IntegrityError,
    fields: Iterable[str],
    message: str = "{field} already registered",
) -> Conflict:
    """
    Translate a unique-constraint violation into a Conflict.

    The offending column is looked up in the driver message; when it cannot
    be determined a generic message is used.
    """
    text = str(exc.orig) if exc.orig is not None else str(exc)
    for field in fields:
        if re.search(rf"\b{re.escape(field)}\b", text):
            return Conflict(message.format(field=field), field=field)
    return Conflict()


# ============== Handlers ==============

def _error_body(message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"message": message}
    if extra:
        body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    extra = getattr(exc, "extra", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), extra),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(
            str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form")
        )
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
