"""Dependency injection for FastAPI."""

from typing import Annotated

from fastapi import Depends

from app.cache.memory import MemoryCacheBackend
from app.config import Settings, get_settings
from app.constants import NetworkRegistry
from app.core.cache import CacheBackend
from app.core.fetcher import JsonFetcher
from app.providers.http_fetcher import ResilientFetcher
from app.providers.safe_api import SafeApiClient
from app.services.chain_data import ChainDataService
from app.services.discovery import AccountDiscoveryService
from app.services.wallet import SafeFlowService


_registry_instance: NetworkRegistry | None = None
_cache_instance: CacheBackend | None = None
_fetcher_instance: JsonFetcher | None = None


def get_registry() -> NetworkRegistry:
    """Get the network registry."""
    global _registry_instance

    if _registry_instance is None:
        _registry_instance = NetworkRegistry()

    return _registry_instance


async def get_cache_backend(
    settings: Annotated[Settings, Depends(get_settings)]
) -> CacheBackend:
    """Get or create the session cache."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = MemoryCacheBackend(default_ttl=settings.cache_ttl_seconds)

    return _cache_instance


async def get_fetcher(
    settings: Annotated[Settings, Depends(get_settings)]
) -> JsonFetcher:
    """Get or create the shared resilient fetcher."""
    global _fetcher_instance

    if _fetcher_instance is None:
        _fetcher_instance = ResilientFetcher(
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            requests_per_second=settings.requests_per_second,
            timeout=settings.request_timeout,
        )

    return _fetcher_instance


def get_safe_api(
    fetcher: Annotated[JsonFetcher, Depends(get_fetcher)],
    registry: Annotated[NetworkRegistry, Depends(get_registry)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SafeApiClient:
    """Get a transaction service client over the shared fetcher."""
    return SafeApiClient(
        fetcher,
        registry=registry,
        page_size=settings.page_size,
        max_records=settings.max_records,
        page_delay=settings.page_delay,
    )


def get_safeflow_service(
    client: Annotated[SafeApiClient, Depends(get_safe_api)],
    cache: Annotated[CacheBackend, Depends(get_cache_backend)],
    registry: Annotated[NetworkRegistry, Depends(get_registry)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SafeFlowService:
    """Get the SafeFlow service instance."""
    return SafeFlowService(
        discovery=AccountDiscoveryService(
            client, registry=registry, delay=settings.discovery_delay
        ),
        chain_data=ChainDataService(
            client,
            request_delay=settings.request_delay,
            network_delay=settings.network_delay,
            network_concurrency=settings.network_concurrency,
        ),
        cache=cache,
        registry=registry,
    )


async def cleanup_dependencies() -> None:
    """Cleanup dependency instances on shutdown."""
    global _cache_instance, _fetcher_instance, _registry_instance

    if _cache_instance:
        await _cache_instance.close()
        _cache_instance = None

    if _fetcher_instance:
        await _fetcher_instance.close()
        _fetcher_instance = None

    _registry_instance = None
