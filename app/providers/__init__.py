"""Safe Transaction Service access package."""

from app.providers.http_fetcher import HostThrottle, ResilientFetcher
from app.providers.safe_api import SafeApiClient

__all__ = [
    "HostThrottle",
    "ResilientFetcher",
    "SafeApiClient",
]
