"""Key-value store interface.

Values are JSON-serializable (dicts, lists, strings, numbers). No
multi-key transactions are assumed: every call is an independent remote
operation that may fail with UpstreamAppError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class KVEntry:
    key: str
    value: Any


class AbstractKeyValueStore(ABC):
    """Interface for async key-value stores."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under ``key`` or None when absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Create or replace the value under ``key``."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""
        ...

    @abstractmethod
    async def scan_by_prefix(self, prefix: str) -> list[KVEntry]:
        """Return every entry whose key starts with ``prefix``."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the store."""
        return None
