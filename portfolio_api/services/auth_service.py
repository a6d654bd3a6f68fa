"""Admin authentication service.

Ties together the login attempt limiter, the API request limiter and the
session manager, and exposes the operations the route layer needs:

- login rate limiting: check_login_rate_limit, record_failed_login,
  clear_login_attempts
- API rate limiting: check_api_rate_limit
- sessions: issue_session, verify_session, revoke_session, extract_token
- the login flow itself: login
"""

from __future__ import annotations

import hmac
import logging
import math
import time
from typing import Callable, Mapping

from portfolio_api.adapters.kv.base import AbstractKeyValueStore
from portfolio_api.adapters.rate_limit.base import (
    AbstractLoginLimiter,
    AbstractRateLimiter,
    LoginCheck,
    RateLimitResult,
)
from portfolio_api.core.errors import (
    MisconfiguredAppError,
    RateLimitedAppError,
    UnauthorizedAppError,
    ValidationAppError,
)
from portfolio_api.services import session_service
from portfolio_api.services.session_service import SessionManager

logger = logging.getLogger(__name__)

# Set through the admin dashboard; takes precedence over the configured password
PASSWORD_OVERRIDE_KEY = "admin_password_override"


class AdminAuthService:
    """Authentication and rate limiting for the single portfolio administrator."""

    def __init__(
        self,
        *,
        store: AbstractKeyValueStore,
        sessions: SessionManager,
        login_limiter: AbstractLoginLimiter,
        api_limiter: AbstractRateLimiter,
        admin_password: str | None,
        admin_header: str = session_service.DEFAULT_ADMIN_HEADER,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._login_limiter = login_limiter
        self._api_limiter = api_limiter
        self._admin_password = admin_password
        self._admin_header = admin_header
        self._clock = clock

    # Login rate limiting

    def check_login_rate_limit(self, ip: str) -> LoginCheck:
        return self._login_limiter.check_and_record_attempt(ip)

    def record_failed_login(self, ip: str) -> None:
        self._login_limiter.record_failure(ip)

    def clear_login_attempts(self, ip: str) -> None:
        self._login_limiter.clear(ip)

    # API rate limiting

    def consume_api_request(self, ip: str) -> RateLimitResult:
        return self._api_limiter.consume(ip)

    def check_api_rate_limit(self, ip: str) -> bool:
        return self.consume_api_request(ip).allowed

    # Sessions

    async def issue_session(self, ip: str) -> str:
        return await self._sessions.issue(ip)

    async def verify_session(self, token: str | None) -> bool:
        return await self._sessions.validate(token)

    async def revoke_session(self, token: str | None) -> None:
        await self._sessions.revoke(token)

    def extract_token(self, headers: Mapping[str, str]) -> str | None:
        return session_service.extract_token(headers, admin_header=self._admin_header)

    # Login flow

    async def _resolve_admin_password(self) -> str | None:
        override = await self._store.get(PASSWORD_OVERRIDE_KEY)
        if isinstance(override, str) and override:
            return override
        return self._admin_password

    async def login(self, ip: str, password: str | None) -> str:
        """Authenticate the administrator and return a new session token.

        Args:
            ip: Client IP the attempt is counted against.
            password: Password submitted by the client.

        Returns:
            The session token.

        Raises:
            RateLimitedAppError: The IP is locked out.
            ValidationAppError: No password was submitted.
            MisconfiguredAppError: No administrator password is configured.
            UnauthorizedAppError: The password is wrong.
            UpstreamAppError: The session could not be stored.
        """
        check = self.check_login_rate_limit(ip)
        if not check.allowed:
            locked_until = check.locked_until or self._clock()
            seconds_left = max(0, int(math.ceil(locked_until - self._clock())))
            minutes_left = max(1, int(math.ceil(seconds_left / 60)))
            logger.warning(
                "login.locked",
                extra={"client_ip": ip, "locked_until": int(locked_until), "retry_after_s": seconds_left},
            )
            raise RateLimitedAppError(
                code="too_many_login_attempts",
                message=f"Too many login attempts. Please try again in {minutes_left} minutes.",
                details={"retry_after": seconds_left, "locked_until": int(locked_until * 1000)},
                headers={"Retry-After": str(seconds_left)},
            )

        if not password:
            logger.info("login.rejected", extra={"client_ip": ip, "reason": "missing_password"})
            raise ValidationAppError(code="password_required", message="Password is required")

        expected = await self._resolve_admin_password()
        if not expected:
            logger.error(
                "login.misconfigured",
                extra={"client_ip": ip, "reason": "admin_password_not_configured"},
            )
            raise MisconfiguredAppError(
                code="server_misconfigured",
                message="Server misconfiguration",
                details={"hint": "Set APP_ADMIN_PASSWORD"},
            )

        if not hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8")):
            self.record_failed_login(ip)
            logger.warning("login.failed", extra={"client_ip": ip, "reason": "invalid_credentials"})
            raise UnauthorizedAppError(code="invalid_credentials", message="Invalid credentials")

        self.clear_login_attempts(ip)
        token = await self.issue_session(ip)
        logger.info("login.success", extra={"client_ip": ip})
        return token
