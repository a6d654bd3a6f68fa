"""Translate application errors into the JSON error envelope.

Every failure response has the shape::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}

Status codes come from the AppError subclass. For server-side faults
(5xx) the details are dropped, and upstream failures get a fixed message,
so store URLs, hints and driver errors stay in the logs.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from portfolio_api.core.errors import (
    AppError,
    MisconfiguredAppError,
    RateLimitedAppError,
    UnauthorizedAppError,
    UpstreamAppError,
    ValidationAppError,
)
from portfolio_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (UnauthorizedAppError, 401),
    (RateLimitedAppError, 429),
    (MisconfiguredAppError, 500),
    (UpstreamAppError, 502),
)

_UPSTREAM_MESSAGE = "An upstream service failed. Please try again later."
_INTERNAL_MESSAGE = "An unexpected error occurred. Please try again later."


def status_for(exc: AppError) -> int:
    """Map an AppError to its HTTP status (400 for unknown subclasses)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _envelope(code: str, message: str, **extra: object) -> dict:
    return {"error": {"code": code, "message": message, "request_id": get_request_id(), **extra}}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError, attaching its headers (e.g. Retry-After)."""
    status_code = status_for(exc)
    server_fault = status_code >= 500

    (logger.error if server_fault else logger.warning)(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "error_details": exc.details,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    message = _UPSTREAM_MESSAGE if isinstance(exc, UpstreamAppError) else exc.message
    extra = {"details": exc.details} if exc.details and not server_fault else {}

    return JSONResponse(
        status_code=status_code,
        content=_envelope(exc.code, message, **extra),
        headers=exc.headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything that is not an AppError; always a bare 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(status_code=500, content=_envelope("internal_server_error", _INTERNAL_MESSAGE))


def setup_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
