"""Simple TTL-based in-memory cache.

Expiry is evaluated lazily on read. There is no eviction beyond TTL.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


@dataclass
class CacheEntry:
    """A cached value and the clock reading at which it expires."""

    value: Any
    expires_at: float


class TTLCache:
    """Key/value store where every entry expires after a fixed TTL.

    Args:
        default_ttl_ms: TTL applied by `set` when no override is given
        clock: Millisecond clock, injectable for tests
    """

    def __init__(
        self,
        default_ttl_ms: float = 30_000,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._store: dict[str, CacheEntry] = {}
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._store[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_ms: float | None = None) -> None:
        """Store a value, expiring after `ttl_ms` (or the default TTL)."""
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def invalidate(self, key: str) -> None:
        """Remove a key immediately, regardless of its TTL."""
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._store)
