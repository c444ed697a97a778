"""Abstract JSON fetcher interface."""

from abc import ABC, abstractmethod
from typing import Any


class JsonFetcher(ABC):
    """Abstract base class for anything that GETs JSON documents by URL."""

    @abstractmethod
    async def fetch(self, url: str, *, required: bool = True) -> Any | None:
        """
        Fetch and decode a JSON document.

        Args:
            url: Absolute URL to GET.
            required: When False, an exhausted retry budget yields None
                instead of raising.

        Returns:
            Decoded JSON, or None when the resource does not exist.

        Raises:
            RateLimitExhaustedError: If still rate limited after all retries
                and ``required`` is True.
            ServiceError: On any other non-success status.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the fetcher and release resources."""
        ...
