"""In-process TTL cache shared by the providers.

Entries expire ``ttl_seconds`` after they were written. Concurrent refills of
the same key are tolerated: the last write wins.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """A dict-backed cache whose entries expire after a fixed lifetime."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, V]] = {}

    def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
