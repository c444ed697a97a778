"""Cache implementations package."""

from app.cache.memory import MemoryCacheBackend

__all__ = [
    "MemoryCacheBackend",
]
