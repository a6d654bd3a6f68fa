"""Rate limiting dependency for FastAPI routes.

This module wires the per-IP API limiter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the limiter lives behind an abstract interface on the
  service container, so storage can move to a shared backend later.
- Configurable: disabled with APP_API_RATE_LIMIT_ENABLED=false.

Rate limiting strategy:
- Fixed window per client IP (100 requests per minute by default).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends

from portfolio_api.core.container import ServiceContainer, get_services
from portfolio_api.core.context import RequestContext, get_request_context
from portfolio_api.core.errors import RateLimitedAppError

logger = logging.getLogger(__name__)


async def enforce_api_rate_limit(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> None:
    """FastAPI dependency enforcing the per-IP API rate limit.

    Consumes one unit of the client's budget. Once the window is exhausted
    the request is rejected with HTTP 429 until the window resets.

    Raises:
        RateLimitedAppError: When the client IP exceeded its budget.
    """
    cfg = services.settings.app
    if not cfg.api_rate_limit_enabled:
        return

    result = services.auth.consume_api_request(ctx.client_ip)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "client_ip": ctx.client_ip,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_s": cfg.api_rate_limit_window_seconds,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_ip": ctx.client_ip,
            "path": ctx.path,
            "limit": result.limit,
            "remaining": result.remaining,
            "window_s": cfg.api_rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if cfg.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_at)

    raise RateLimitedAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={"retry_after": retry_after, "limit": result.limit, "reset_at": result.reset_at},
        headers=headers or None,
    )
