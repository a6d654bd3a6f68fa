"""Dict-backed key-value store for development and tests.

Values are deep-copied on the way in and out so callers can never mutate
stored state by holding on to a returned object. No method awaits while
touching the dict, so each call is atomic on the event loop.
"""

from __future__ import annotations

import copy
from typing import Any

from portfolio_api.adapters.kv.base import AbstractKeyValueStore, KVEntry


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Process-local key-value store."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(size={len(self._data)})"

    def __contains__(self, key: str) -> bool:
        return key in self._data

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def scan_by_prefix(self, prefix: str) -> list[KVEntry]:
        return [
            KVEntry(key=key, value=copy.deepcopy(value))
            for key, value in sorted(self._data.items())
            if key.startswith(prefix)
        ]
