from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from portfolio_api.core.auth import require_admin_session
from portfolio_api.core.container import get_auth_service
from portfolio_api.core.context import RequestContext, get_request_context
from portfolio_api.core.rate_limit import enforce_api_rate_limit
from portfolio_api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    SessionStatusResponse,
)
from portfolio_api.services.auth_service import AdminAuthService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AdminAuthService, Depends(get_auth_service)],
) -> LoginResponse:
    """Exchange the administrator password for a session token.

    Attempts are counted per client IP; after too many the IP is locked out
    and receives 429 until the lockout ends. The token is valid for 24 hours
    and must be sent back in the X-Admin-Token header.
    """
    token = await auth.login(ctx.client_ip, body.password)
    return LoginResponse(token=token)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    dependencies=[Depends(enforce_api_rate_limit)],
)
async def logout(
    token: Annotated[str, Depends(require_admin_session)],
    auth: Annotated[AdminAuthService, Depends(get_auth_service)],
) -> LogoutResponse:
    """Delete the presented session so the token stops working immediately."""
    await auth.revoke_session(token)
    return LogoutResponse()


@router.get(
    "/session",
    response_model=SessionStatusResponse,
    dependencies=[Depends(enforce_api_rate_limit), Depends(require_admin_session)],
)
async def session_status() -> SessionStatusResponse:
    """Report whether the presented session token is still valid."""
    return SessionStatusResponse(valid=True)
