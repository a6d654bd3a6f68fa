"""Admin session issuance, validation and revocation.

Sessions are opaque random tokens. The token itself carries no claims; the
key-value store holds ``{createdAt, expiresAt, ip}`` under
``admin_session:<token>``. Expiry is enforced lazily: the first read that
finds an expired record deletes it. There is no renewal.
"""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
import time
from typing import Callable, Mapping

from pydantic import ValidationError

from portfolio_api.adapters.kv.base import AbstractKeyValueStore
from portfolio_api.core.errors import UpstreamAppError
from portfolio_api.schemas.auth import SessionRecord

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "admin_session:"

# 32 random bytes, hex encoded
TOKEN_BYTES = 32
TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")

DEFAULT_ADMIN_HEADER = "X-Admin-Token"


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def is_well_formed_token(token: str | None) -> bool:
    return bool(token) and TOKEN_PATTERN.fullmatch(token) is not None


def session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


def hash_token(token: str) -> str:
    """Short digest of a token, safe to log."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def _header_lookup(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def extract_token(
    headers: Mapping[str, str],
    *,
    admin_header: str = DEFAULT_ADMIN_HEADER,
) -> str | None:
    """Pull the session token out of request headers.

    The dedicated admin header wins. Otherwise ``Authorization: Bearer ...``
    is used, but only when its value has the session token shape, so that
    unrelated bearer credentials sharing the header are ignored.

    Args:
        headers: Request headers (case-insensitive lookup).
        admin_header: Name of the dedicated admin token header.

    Returns:
        The token, or None when no usable token is present.
    """
    custom = (_header_lookup(headers, admin_header) or "").strip()
    if custom:
        return custom

    authorization = (_header_lookup(headers, "Authorization") or "").strip()
    if not authorization:
        return None

    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None

    candidate = credentials.strip()
    if is_well_formed_token(candidate):
        return candidate
    return None


class SessionManager:
    """Issue, validate and revoke admin sessions stored in a key-value store."""

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        ttl_seconds: int = 86400,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        self._store = store
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    async def issue(self, ip: str) -> str:
        """Create a session for ``ip`` and return its token.

        The record is read back after writing; a write that did not land
        fails the login instead of handing out a dead token.

        Raises:
            UpstreamAppError: If the store rejects the write or the record
                cannot be read back.
        """
        token = generate_token()
        key = session_key(token)
        now = self._now_ms()
        record = SessionRecord(created_at=now, expires_at=now + self._ttl_ms, ip=ip)

        await self._store.set(key, record.model_dump(by_alias=True))

        if await self._store.get(key) is None:
            logger.error(
                "session.not_persisted",
                extra={"token_hash": hash_token(token), "client_ip": ip},
            )
            raise UpstreamAppError(
                code="session_not_persisted",
                message="Failed to create session",
                details={"operation": "issue_session"},
            )

        logger.info(
            "session.issued",
            extra={
                "token_hash": hash_token(token),
                "client_ip": ip,
                "expires_at": record.expires_at,
            },
        )
        return token

    async def validate(self, token: str | None) -> bool:
        """Return True only for a stored, unexpired session.

        Fails closed: store errors and unreadable records count as invalid.
        A session is valid strictly while ``now < expiresAt``; the first read
        at or after that instant deletes the record.
        """
        if not token:
            logger.debug("session.rejected", extra={"reason": "missing_token"})
            return False

        if not is_well_formed_token(token):
            logger.info("session.rejected", extra={"reason": "malformed_token"})
            return False

        key = session_key(token)
        token_hash = hash_token(token)

        try:
            raw = await self._store.get(key)
        except Exception as exc:  # noqa: BLE001 - any store failure denies access
            logger.error(
                "session.lookup_failed",
                extra={
                    "token_hash": token_hash,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return False

        if raw is None:
            logger.info("session.rejected", extra={"reason": "not_found", "token_hash": token_hash})
            return False

        try:
            record = SessionRecord.model_validate(raw)
        except ValidationError:
            logger.warning("session.rejected", extra={"reason": "corrupt_record", "token_hash": token_hash})
            return False

        if record.expires_at <= self._now_ms():
            logger.info("session.expired", extra={"token_hash": token_hash})
            try:
                await self._store.delete(key)
            except Exception as exc:  # noqa: BLE001 - record is invalid either way
                logger.error(
                    "session.delete_failed",
                    extra={
                        "token_hash": token_hash,
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                )
            return False

        return True

    async def revoke(self, token: str | None) -> None:
        """Delete the session for ``token`` (explicit logout).

        Malformed or empty tokens are ignored.

        Raises:
            UpstreamAppError: If the store delete fails.
        """
        if token is None or not is_well_formed_token(token):
            return
        await self._store.delete(session_key(token))
        logger.info("session.revoked", extra={"token_hash": hash_token(token)})
