"""In-memory session cache backend."""

import asyncio
import logging
import time
from typing import Any, NamedTuple

from app.core.cache import CacheBackend

logger = logging.getLogger(__name__)


class CacheEntry(NamedTuple):
    """Cache entry with value and monotonic expiry."""

    value: Any
    expires_at: float | None


class MemoryCacheBackend(CacheBackend):
    """
    Process-local cache with TTL support.

    Holds fetched bundles for the lifetime of the process only; nothing is
    written outside memory. Writes sweep out expired entries at most once per
    ``sweep_interval`` seconds, so keys that are never read again still go.
    """

    def __init__(
        self, default_ttl: int = 300, clock=time.monotonic, sweep_interval: float = 60.0
    ) -> None:
        """
        Initialize memory cache backend.

        Args:
            default_ttl: Default TTL in seconds. 0 disables expiry.
            clock: Monotonic time source, injectable for tests.
            sweep_interval: Minimum seconds between sweeps triggered by writes.
        """
        self._default_ttl = default_ttl
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval
        self._store: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def _expired(self, entry: CacheEntry) -> bool:
        return entry.expires_at is not None and entry.expires_at <= self._clock()

    def _evict_expired(self) -> int:
        # Caller holds the lock.
        expired_keys = [k for k, v in self._store.items() if self._expired(v)]
        for key in expired_keys:
            del self._store[key]
        if expired_keys:
            logger.debug(f"[Cache] Evicted {len(expired_keys)} expired entries")
        self._next_sweep = self._clock() + self._sweep_interval
        return len(expired_keys)

    async def get(self, key: str) -> Any | None:
        """Retrieve a live value from memory."""
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                del self._store[key]
                return None
            return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value in memory with optional TTL."""
        async with self._lock:
            if self._clock() >= self._next_sweep:
                self._evict_expired()
            expire_time = ttl if ttl is not None else self._default_ttl
            expires_at = self._clock() + expire_time if expire_time else None
            self._store[key] = CacheEntry(value=value, expires_at=expires_at)
            return True

    async def delete(self, key: str) -> bool:
        """Delete a key from memory."""
        async with self._lock:
            return self._store.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        """Check if a live key exists in memory."""
        return await self.get(key) is not None

    async def clear(self) -> bool:
        """Clear all SafeFlow keys from memory."""
        async with self._lock:
            for key in [k for k in self._store if k.startswith("safeflow:")]:
                del self._store[key]
            return True

    async def close(self) -> None:
        """Drop everything held in memory."""
        async with self._lock:
            self._store.clear()

    async def ping(self) -> bool:
        """Memory cache is always available."""
        return True

    async def cleanup_expired(self) -> int:
        """Remove expired cache entries."""
        async with self._lock:
            return self._evict_expired()
