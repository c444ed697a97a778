"""Abstract cache backend interface."""

from abc import ABC, abstractmethod
from typing import Any


class CacheBackend(ABC):
    """Abstract base class for session cache backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """
        Retrieve a value from the cache.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached value if found, None otherwise.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Store a value in the cache.

        Args:
            key: The cache key.
            value: The value to store.
            ttl: Time-to-live in seconds. None for the backend default.

        Returns:
            True if the value was stored successfully.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns False if it didn't exist."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a live key exists in the cache."""
        ...

    @abstractmethod
    async def clear(self) -> bool:
        """Clear all SafeFlow keys from the cache."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the cache."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check if the cache backend is healthy."""
        ...

    def _make_key(self, namespace: str, *parts: str) -> str:
        """Create a namespaced cache key."""
        return f"safeflow:{namespace}:{':'.join(parts)}"

    def discovery_key(self, address: str) -> str:
        """Generate cache key for discovered networks of an account."""
        return self._make_key("discovery", address.lower())

    def bundle_key(self, network_id: int, address: str) -> str:
        """Generate cache key for a fetched network bundle."""
        return self._make_key("bundle", str(network_id), address.lower())
