"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what applies to it.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    locked_until: int
    limit: int
    remaining: int
    reset_at: int
    operation: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
        headers: Optional HTTP headers to attach to the error response.
    """

    code: str
    message: str
    details: ErrorDetails | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class UnauthorizedAppError(AppError):
    """Raised when a session is missing, malformed, unknown or expired."""


class RateLimitedAppError(AppError):
    """Raised when an IP exceeds its login or API request budget."""


class MisconfiguredAppError(AppError):
    """Raised when required server configuration is absent."""


class UpstreamAppError(AppError):
    """Raised when the key-value store or object storage fails."""
