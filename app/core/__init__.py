"""Core module for base interfaces and abstractions."""

from app.core.cache import CacheBackend
from app.core.exceptions import (
    MalformedRecordError,
    RateLimitExhaustedError,
    SafeFlowError,
    ServiceError,
    UnsupportedNetworkError,
)
from app.core.fetcher import JsonFetcher
from app.core.pool import run_pooled

__all__ = [
    "CacheBackend",
    "JsonFetcher",
    "MalformedRecordError",
    "RateLimitExhaustedError",
    "SafeFlowError",
    "ServiceError",
    "UnsupportedNetworkError",
    "run_pooled",
]
