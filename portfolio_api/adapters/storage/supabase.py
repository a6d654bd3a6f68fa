"""Supabase Storage client over the Storage REST API.

Buckets are private by default; images are shared through signed URLs.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from portfolio_api.adapters.storage.base import AbstractObjectStorage, Bucket
from portfolio_api.core.errors import UpstreamAppError

logger = logging.getLogger(__name__)


class SupabaseObjectStorage(AbstractObjectStorage):
    """Object storage backed by Supabase Storage."""

    def __init__(
        self,
        *,
        url: str,
        service_role_key: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._storage_url = f"{url.rstrip('/')}/storage/v1"
        self._client = httpx.AsyncClient(
            base_url=self._storage_url,
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "storage.request_failed",
                extra={
                    "operation": operation,
                    "status_code": exc.response.status_code,
                    "error_msg": exc.response.text[:200],
                },
            )
            raise UpstreamAppError(
                code="storage_error",
                message="Object storage request failed",
                details={"operation": operation, "http_status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "storage.request_failed",
                extra={
                    "operation": operation,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise UpstreamAppError(
                code="storage_unavailable",
                message="Object storage is unavailable",
                details={"operation": operation},
            ) from exc
        return response

    @staticmethod
    def _object_path(bucket: str, path: str) -> str:
        return f"{quote(bucket, safe='')}/{quote(path.lstrip('/'))}"

    async def list_buckets(self) -> list[Bucket]:
        response = await self._request("list_buckets", "GET", "/bucket")
        return [Bucket(name=item["name"], public=bool(item.get("public"))) for item in response.json()]

    async def create_bucket(self, name: str, *, public: bool = False) -> None:
        await self._request(
            "create_bucket",
            "POST",
            "/bucket",
            json={"id": name, "name": name, "public": public},
        )
        logger.info("storage.bucket_created", extra={"bucket": name, "public": public})

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> None:
        await self._request(
            "upload",
            "POST",
            f"/object/{self._object_path(bucket, path)}",
            content=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
        )
        logger.info(
            "storage.uploaded",
            extra={"bucket": bucket, "object_path": path, "size": len(data)},
        )

    async def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        response = await self._request(
            "create_signed_url",
            "POST",
            f"/object/sign/{self._object_path(bucket, path)}",
            json={"expiresIn": ttl_seconds},
        )
        signed = response.json().get("signedURL")
        if not signed:
            raise UpstreamAppError(
                code="storage_error",
                message="Object storage returned no signed URL",
                details={"operation": "create_signed_url"},
            )
        # Supabase answers with a path relative to the storage root
        if signed.startswith("http://") or signed.startswith("https://"):
            return signed
        return f"{self._storage_url}/{signed.lstrip('/')}"

    async def aclose(self) -> None:
        await self._client.aclose()
