"""Supabase key-value store over the PostgREST API.

Rows live in a table with a text ``key`` primary key and a jsonb ``value``
column. Uses httpx for async HTTP calls instead of a direct PostgreSQL
connection; the service role key is sent on every request.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from portfolio_api.adapters.kv.base import AbstractKeyValueStore, KVEntry
from portfolio_api.core.errors import UpstreamAppError

logger = logging.getLogger(__name__)


class SupabaseKeyValueStore(AbstractKeyValueStore):
    """Key-value store backed by a Supabase (PostgREST) table."""

    def __init__(
        self,
        *,
        url: str,
        service_role_key: str,
        table: str = "kv_store",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the PostgREST client.

        Args:
            url: Supabase project URL.
            service_role_key: Service role key (server-side only).
            table: Table holding the key/value rows.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._table = table
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _request(self, operation: str, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, f"/{self._table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "kv.request_failed",
                extra={
                    "operation": operation,
                    "status_code": exc.response.status_code,
                    "error_msg": exc.response.text[:200],
                },
            )
            raise UpstreamAppError(
                code="kv_store_error",
                message="Key-value store request failed",
                details={"operation": operation, "http_status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "kv.request_failed",
                extra={
                    "operation": operation,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise UpstreamAppError(
                code="kv_store_unavailable",
                message="Key-value store is unavailable",
                details={"operation": operation},
            ) from exc
        return response

    async def get(self, key: str) -> Any | None:
        response = await self._request(
            "get",
            "GET",
            params={"select": "value", "key": f"eq.{key}", "limit": "1"},
        )
        rows = response.json()
        if not rows:
            return None
        return rows[0].get("value")

    async def set(self, key: str, value: Any) -> None:
        await self._request(
            "set",
            "POST",
            json={"key": key, "value": value},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def delete(self, key: str) -> None:
        await self._request("delete", "DELETE", params={"key": f"eq.{key}"})

    async def scan_by_prefix(self, prefix: str) -> list[KVEntry]:
        response = await self._request(
            "scan_by_prefix",
            "GET",
            params={"select": "key,value", "key": f"like.{prefix}*", "order": "key.asc"},
        )
        return [KVEntry(key=row["key"], value=row.get("value")) for row in response.json()]

    async def aclose(self) -> None:
        await self._client.aclose()
