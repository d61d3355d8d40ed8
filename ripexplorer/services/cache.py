"""
Key-value cache.

An in-process store with per-key expiry and the command set the service
needs (get/set/exists/ttl/ping). Values are stored as JSON text, so
cached objects come back as fresh copies with JSON types and callers
never share mutable state through the cache.
"""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class _Entry:
    value: str
    expires_at: float | None = None


class MemoryCache:
    """
    In-memory cache with expiring keys.

    Expired entries are dropped when read, and swept from the whole
    store every `sweep_interval` writes so keys that are never read again
    do not accumulate.

    Args:
        clock: Monotonic time source in seconds; tests inject a fake
        sweep_interval: Writes between sweeps of expired entries
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: int = 256,
    ):
        self._clock = clock
        self._store: dict[str, _Entry] = {}
        self._sweep_interval = max(1, sweep_interval)
        self._writes = 0

    @property
    def size(self) -> int:
        """Stored entries, including expired ones not yet swept."""
        return len(self._store)

    def _live(self, key: str) -> _Entry | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._store[key]
            return None
        return entry

    async def get(self, key: str) -> Any | None:
        """Cached value, or None if absent or expired."""
        entry = self._live(key)
        if entry is None:
            return None
        return json.loads(entry.value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """
        Store a JSON-serializable value.

        Args:
            ttl: Seconds until expiry; None stores the key without expiry

        Raises:
            TypeError: If the value is not JSON-serializable
        """
        serialized = json.dumps(value)
        expires_at = self._clock() + ttl if ttl else None
        self._store[key] = _Entry(serialized, expires_at)
        self._writes += 1
        if self._writes >= self._sweep_interval:
            self.sweep()

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        self._writes = 0
        now = self._clock()
        expired = [
            key
            for key, entry in self._store.items()
            if entry.expires_at is not None and now >= entry.expires_at
        ]
        for key in expired:
            del self._store[key]
        return len(expired)

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def ttl(self, key: str) -> int:
        """Seconds until expiry; -1 for no expiry, -2 for a missing key."""
        entry = self._live(key)
        if entry is None:
            return -2
        if entry.expires_at is None:
            return -1
        return max(0, int(entry.expires_at - self._clock()))

    async def ping(self) -> bool:
        return True


class CacheKeys:
    """Namespaced cache key builders."""

    @staticmethod
    def set_data(set_id: str) -> str:
        return f"rip:set:{set_id}"

    @staticmethod
    def user_search(query: str) -> str:
        return f"rip:search:{query.lower()}"

    @staticmethod
    def extraction(user_input: str) -> str:
        return f"rip:extract:{user_input}"
