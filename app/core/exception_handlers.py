"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain and framework
exceptions to HTTP responses for the versioned API. The legacy /api routes
and the callable functions answer in their own error shapes and handle
PortalException themselves.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.domain.exceptions import PortalException

logger = logging.getLogger(__name__)

ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "NO_RECORDS_TO_EXPORT": 400,
    "AUTHENTICATION_ERROR": 401,
    "PERMISSION_DENIED": 403,
    "STORE_PERMISSION_DENIED": 403,
    "STORAGE_PERMISSION_ERROR": 403,
    "RESOURCE_NOT_FOUND": 404,
    "ACCOUNT_NOT_FOUND": 404,
    "STORAGE_NOT_FOUND": 404,
    "ACCOUNT_ALREADY_EXISTS": 409,
    "INVALID_STATUS_TRANSITION": 409,
    "CONCURRENT_MODIFICATION": 409,
    "TOO_MANY_ATTEMPTS": 429,
    "STORAGE_UPLOAD_ERROR": 502,
    "IDENTITY_PROVIDER_ERROR": 502,
    "STORE_INDEX_MISSING": 503,
    "STORE_UNAVAILABLE": 503,
}


def status_for(exc: PortalException) -> int:
    """HTTP status for a domain exception (400 when the code is unmapped)."""
    return ERROR_CODE_STATUS.get(exc.error_code, 400)


def _portal_exception_handler(request: Request, exc: PortalException) -> JSONResponse:
    """Return JSON from PortalException.to_dict() with appropriate status code."""
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    detail: Any = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Handlers: PortalException (and subclasses), RequestValidationError,
    StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(PortalException, _portal_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
