"""Rate limiter interfaces.

The API depends on these abstractions (not the concrete implementations)
so storage can move to a shared backend (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


@dataclass(frozen=True)
class LoginCheck:
    """Outcome of a login attempt check.

    Attributes:
        allowed: Whether the attempt may proceed to password comparison.
        locked_until: UNIX epoch seconds when the lockout ends (blocked only).
    """

    allowed: bool
    locked_until: float | None = None


class AbstractRateLimiter(ABC):
    """Interface for request rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Consume one unit of budget for a given key.

        Args:
            key: Unique identifier (e.g., client IP).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError


class AbstractLoginLimiter(ABC):
    """Interface for login attempt limiters with lockout."""

    @abstractmethod
    def check_and_record_attempt(self, key: str) -> LoginCheck:
        """Register a login attempt and decide whether it may proceed."""
        raise NotImplementedError

    @abstractmethod
    def record_failure(self, key: str) -> None:
        """Note a failed password comparison for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def clear(self, key: str) -> None:
        """Forget every attempt recorded for ``key``."""
        raise NotImplementedError
