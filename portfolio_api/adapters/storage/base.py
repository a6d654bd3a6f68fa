"""Object storage interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Bucket:
    name: str
    public: bool = False


class AbstractObjectStorage(ABC):
    """Interface for bucketed blob storage issuing signed URLs."""

    @abstractmethod
    async def list_buckets(self) -> list[Bucket]:
        ...

    @abstractmethod
    async def create_bucket(self, name: str, *, public: bool = False) -> None:
        ...

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> None:
        ...

    @abstractmethod
    async def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """Return an absolute URL granting read access for ``ttl_seconds``."""
        ...

    async def ensure_bucket(self, name: str, *, public: bool = False) -> None:
        """Create ``name`` unless a bucket with that name already exists."""
        buckets = await self.list_buckets()
        if any(bucket.name == name for bucket in buckets):
            return
        await self.create_bucket(name, public=public)

    async def aclose(self) -> None:
        return None
