"""Admin session authentication dependency.

Protected routes declare ``Depends(require_admin_session)``. The token is
taken from the admin header (or a bearer header of the right shape) and
checked against the key-value store. Every failure produces the same
generic 401 so callers cannot tell which check rejected them.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends

from portfolio_api.core.container import get_auth_service
from portfolio_api.core.context import RequestContext, get_request_context
from portfolio_api.core.errors import UnauthorizedAppError
from portfolio_api.services.auth_service import AdminAuthService
from portfolio_api.services.session_service import hash_token

logger = logging.getLogger(__name__)


def _unauthorized() -> UnauthorizedAppError:
    return UnauthorizedAppError(code="unauthorized", message="Unauthorized")


async def require_admin_session(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AdminAuthService, Depends(get_auth_service)],
) -> str:
    """FastAPI dependency allowing only requests with a valid admin session.

    Usage:
        @router.get("/admin/thing")
        async def thing(token: str = Depends(require_admin_session)): ...

    Returns:
        The validated session token (e.g. for logout).

    Raises:
        UnauthorizedAppError: Missing, malformed, unknown or expired session,
            or the session store could not be reached.
    """
    token = auth.extract_token(ctx.headers)
    if not token:
        logger.warning(
            "auth.missing_token",
            extra={"client_ip": ctx.client_ip, "path": ctx.path},
        )
        raise _unauthorized()

    if not await auth.verify_session(token):
        logger.warning(
            "auth.invalid_session",
            extra={"client_ip": ctx.client_ip, "path": ctx.path, "token_hash": hash_token(token)},
        )
        raise _unauthorized()

    logger.debug(
        "auth.success",
        extra={"client_ip": ctx.client_ip, "token_hash": hash_token(token)},
    )
    return token
