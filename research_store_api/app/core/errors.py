"""
Error taxonomy and the HTTP error envelope.

Services raise subclasses of ``ServiceError``; each carries the HTTP
status it maps to and a short machine-readable code.  The handlers
registered by ``register_exception_handlers`` turn those, FastAPI's
own validation errors and anything unexpected into one JSON shape::

    {"success": false, "message": "...", "code": "...", "data": null}
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.data = data


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(ServiceError):
    """A unique key is already taken.

    Reported as 400 so a duplicate signup looks like any other rejected
    registration to the client.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"


class PaymentIncomplete(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "payment_incomplete"


class InternalError(ServiceError):
    pass


class PaymentGatewayError(InternalError):
    code = "payment_gateway_error"


def error_body(message: str, code: str, data: Any = None) -> dict:
    return {"success": False, "message": message, "code": code, "data": data}


def _describe_validation_errors(errors: list) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path", "form"))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.code, exc.data),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(_describe_validation_errors(exc.errors()), ValidationFailed.code),
    )


async def pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    # Models built by hand inside handlers (multipart forms, JSON-in-form
    # fields) raise plain pydantic errors.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(_describe_validation_errors(exc.errors()), ValidationFailed.code),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", InternalError.code),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every error handler to ``app``."""
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
