"""Sharded dictionary with one lock per shard.

Limiter state is keyed by client IP. Hashing keys onto a fixed number of
shards keeps each read-modify-write atomic for its key while requests from
IPs in other shards proceed without waiting on a shared lock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, TypeVar

V = TypeVar("V")


class _Shard(Generic[V]):
    __slots__ = ("lock", "items")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.items: dict[str, V] = {}


class StripedLockMap(Generic[V]):
    """Concurrent ``str -> V`` map guarded by striped locks.

    Example:
        >>> state: StripedLockMap[int] = StripedLockMap(shards=4)
        >>> with state.locked("1.2.3.4") as items:
        ...     items["1.2.3.4"] = items.get("1.2.3.4", 0) + 1
    """

    def __init__(self, *, shards: int = 64) -> None:
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards: list[_Shard[V]] = [_Shard() for _ in range(shards)]

    def _shard_for(self, key: str) -> _Shard[V]:
        return self._shards[hash(key) % len(self._shards)]

    @contextmanager
    def locked(self, key: str) -> Iterator[dict[str, V]]:
        """Hold the lock covering ``key`` and yield its shard's dictionary.

        Callers must only touch ``key`` inside the block; other keys in the
        same shard belong to other requests.
        """
        shard = self._shard_for(key)
        with shard.lock:
            yield shard.items

    def get(self, key: str) -> V | None:
        with self.locked(key) as items:
            return items.get(key)

    def pop(self, key: str) -> V | None:
        with self.locked(key) as items:
            return items.pop(key, None)

    def sweep(self, is_stale: Callable[[V], bool]) -> int:
        """Delete every entry for which ``is_stale`` is true; return the count.

        Shards are locked one at a time, so callers must not hold a shard
        lock while sweeping.
        """
        removed = 0
        for shard in self._shards:
            with shard.lock:
                stale = [key for key, value in shard.items.items() if is_stale(value)]
                for key in stale:
                    del shard.items[key]
                removed += len(stale)
        return removed

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.items)
        return total
