"""HTTP middleware: request correlation and response hardening.

request_id_middleware:
- Accepts the incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars so every log line of the request carries it
- Echoes the id and the total duration back in response headers
- Logs one ``request.completed`` line per request

security_headers_middleware:
- Adds nosniff, frame denial, HSTS and referrer policy headers

Usage:
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from portfolio_api.core.config import settings
from portfolio_api.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


def _request_id_header(request: Request) -> str:
    services = getattr(request.app.state, "services", None)
    app_settings = services.settings if services is not None else settings
    return app_settings.log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the request id header configured for this app
    (LOG_REQUEST_ID_HEADER, default X-Request-ID), that value is used;
    otherwise a UUID4 is generated.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with X-Request-ID and
            X-Request-Duration-ms headers added.
    """

    header_name = _request_id_header(request)
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Attach browser hardening headers to every response.

    Headers already set by a handler are left untouched.
    """

    response: Response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response
