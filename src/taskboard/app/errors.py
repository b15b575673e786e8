"""Error types raised by the board service and the handlers that render them.

Every failure leaves the API as the same envelope::

    {"code": "...", "message": "...", "details": {..., "request_id": "..."}}
"""

from __future__ import annotations

import functools
import logging
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.context import REQUEST_ID_HEADER, bind_request_id, reset_request_id
from .schemas.system import ErrorResponse

logger = logging.getLogger(__name__)

ExcT = TypeVar("ExcT", bound=Exception)


class ApplicationError(Exception):
    """Base class for errors that map onto a specific HTTP response.

    Subclasses pick their ``code``, ``status_code`` and ``default_message``;
    any of them can still be overridden per raise.
    """

    code = "application_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request could not be processed."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class InvalidInputError(ApplicationError):
    code = "invalid_input"
    default_message = "Invalid input."


class NotFoundError(ApplicationError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class AuthenticationError(ApplicationError):
    code = "invalid_credentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect email or password."


class PermissionDeniedError(ApplicationError):
    """The principal is authenticated but lacks the role the operation needs."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not permitted to perform this operation."


class ConflictError(ApplicationError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource state conflict."


class ConcurrentModificationError(ConflictError):
    """A board was written by someone else between load and save."""

    code = "concurrent_modification"
    default_message = "The board was modified concurrently; reload and retry."


class UpstreamUnavailableError(ApplicationError):
    """The commit host failed to answer or answered with something unusable."""

    code = "upstream_unavailable"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service is unavailable."


class StorageError(ApplicationError):
    """The document store rejected or failed a read or write."""

    code = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage backend failure."


_HTTP_ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _with_details(request_id: str | None, details: Any | None) -> Any | None:
    if request_id is None:
        return details
    if details is None:
        return {"request_id": request_id}
    if isinstance(details, dict):
        return {"request_id": request_id, **details} if "request_id" not in details else details
    return {"request_id": request_id, "detail": details}


def _render_error(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Build the error envelope, tagging it with the request id when there is one."""

    request_id = _request_id(request)
    body = ErrorResponse(code=code, message=message, details=_with_details(request_id, details))
    response = JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _log_level(status_code: int) -> int:
    return logging.ERROR if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logging.WARNING


def _in_request_context(
    handler: Callable[[Request, ExcT], Awaitable[JSONResponse]],
) -> Callable[[Request, ExcT], Awaitable[JSONResponse]]:
    # Handlers for unhandled errors run outside the correlation middleware.
    @functools.wraps(handler)
    async def wrapper(request: Request, exc: ExcT) -> JSONResponse:
        request_id = _request_id(request)
        token = bind_request_id(request_id) if request_id else None
        try:
            return await handler(request, exc)
        finally:
            if token is not None:
                reset_request_id(token)

    return wrapper


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Pydantic error entries with ``ctx`` values stringified and doc links dropped."""

    cleaned: list[dict[str, Any]] = []
    for error in exc.errors():
        entry = {key: value for key, value in error.items() if key != "url"}
        if "ctx" in entry:
            entry["ctx"] = {key: str(value) for key, value in entry["ctx"].items()}
        cleaned.append(entry)
    return cleaned


@_in_request_context
async def _application_error(request: Request, exc: ApplicationError) -> JSONResponse:
    logger.log(
        _log_level(exc.status_code),
        "Application error encountered",
        extra={"code": exc.code, "status_code": exc.status_code, "path": request.url.path},
    )
    return _render_error(request, exc.status_code, exc.code, exc.message, exc.details)


@_in_request_context
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_errors(exc)
    logger.warning("Request validation failed", extra={"errors": errors})
    return _render_error(
        request,
        422,
        "validation_error",
        "Request validation failed.",
        {"errors": errors},
    )


@_in_request_context
async def _integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error encountered", exc_info=exc)
    return _render_error(request, status.HTTP_409_CONFLICT, "db_integrity_error", "Database integrity violation.")


@_in_request_context
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    logger.log(
        _log_level(exc.status_code),
        "HTTP exception raised",
        extra={"code": code, "status_code": exc.status_code, "path": request.url.path},
    )
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message = _status_phrase(exc.status_code)
        details = {"errors": exc.detail} if isinstance(exc.detail, list) else exc.detail
    return _render_error(request, exc.status_code, code, message, details, headers=exc.headers)


@_in_request_context
async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled application error")
    return _render_error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "server_error", "Internal server error.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApplicationError, _application_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(IntegrityError, _integrity_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)


__all__ = [
    "ApplicationError",
    "AuthenticationError",
    "ConcurrentModificationError",
    "ConflictError",
    "InvalidInputError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    "UpstreamUnavailableError",
    "register_exception_handlers",
]
