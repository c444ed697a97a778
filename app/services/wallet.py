"""Session-level orchestration of discovery, fetching and aggregation."""

import logging

from app.constants import NetworkRegistry
from app.core.cache import CacheBackend
from app.models.flows import FlowGraph, MultiNetworkSummary, TimelineEntry
from app.models.safe import DiscoveredAccount, NetworkBundle, NormalizedBundle
from app.services.aggregator import FlowAggregator
from app.services.chain_data import ChainDataService
from app.services.discovery import AccountDiscoveryService
from app.services.normalizer import TransferNormalizer

logger = logging.getLogger(__name__)


class SafeFlowService:
    """
    Entry point used by the HTTP layer.

    Discovery results and fetched bundles are kept in the session cache, so
    switching between views of the same account does not hit the transaction
    service again until the entries expire.
    """

    def __init__(
        self,
        discovery: AccountDiscoveryService,
        chain_data: ChainDataService,
        cache: CacheBackend,
        registry: NetworkRegistry | None = None,
        normalizer: TransferNormalizer | None = None,
        aggregator: FlowAggregator | None = None,
    ) -> None:
        self._registry = registry if registry is not None else NetworkRegistry()
        self._discovery = discovery
        self._chain_data = chain_data
        self._cache = cache
        self._normalizer = normalizer or TransferNormalizer(self._registry)
        self._aggregator = aggregator or FlowAggregator(self._registry)

    @property
    def registry(self) -> NetworkRegistry:
        return self._registry

    async def discover(self, address: str, refresh: bool = False) -> list[DiscoveredAccount]:
        """Networks on which ``address`` is a Safe, from cache when possible."""
        key = self._cache.discovery_key(address)
        if not refresh:
            cached = await self._cache.get(key)
            if cached is not None:
                logger.debug(f"[SafeFlow] Discovery cache hit for {address}")
                return cached

        discovered = await self._discovery.discover_accounts(address)
        await self._cache.set(key, discovered)
        return discovered

    async def get_bundle(
        self, address: str, network_id: int, refresh: bool = False
    ) -> NetworkBundle:
        """
        Raw bundle of one network.

        Raises:
            UnsupportedNetworkError: If ``network_id`` is not registered.
        """
        self._registry.get(network_id)
        key = self._cache.bundle_key(network_id, address)
        if not refresh:
            cached = await self._cache.get(key)
            if cached is not None:
                return cached

        bundle = await self._chain_data.fetch_network_bundle(address, network_id)
        await self._cache.set(key, bundle)
        return bundle

    async def get_normalized(
        self, address: str, network_id: int, refresh: bool = False
    ) -> tuple[NormalizedBundle, bool]:
        """Normalized bundle of one network plus its truncation flag."""
        bundle = await self.get_bundle(address, network_id, refresh=refresh)
        return self._normalizer.normalize_bundle(bundle, address), bundle.truncated

    async def get_all_normalized(
        self, address: str, refresh: bool = False
    ) -> dict[int, NormalizedBundle]:
        """Normalized bundles of every network the account was discovered on."""
        discovered = await self.discover(address, refresh=refresh)

        bundles: dict[int, NetworkBundle] = {}
        missing: list[int] = []
        for item in discovered:
            cached = None if refresh else await self._cache.get(
                self._cache.bundle_key(item.network_id, address)
            )
            if cached is None:
                missing.append(item.network_id)
            else:
                bundles[item.network_id] = cached

        if missing:
            fetched = await self._chain_data.fetch_all_bundles(address, missing)
            for network_id, bundle in fetched.items():
                await self._cache.set(self._cache.bundle_key(network_id, address), bundle)
            bundles.update(fetched)

        # discovery order, networks that failed to fetch are absent
        return {
            item.network_id: self._normalizer.normalize_bundle(bundles[item.network_id], address)
            for item in discovered
            if item.network_id in bundles
        }

    async def timeline(
        self, address: str, network_id: int | None = None
    ) -> list[TimelineEntry]:
        """Chronological transfers of one network, or of all of them."""
        if network_id is None:
            bundles = await self.get_all_normalized(address)
        else:
            normalized, _ = await self.get_normalized(address, network_id)
            bundles = {network_id: normalized}
        return self._aggregator.build_timeline(bundles)

    async def flow_graph(self, address: str, network_id: int) -> FlowGraph:
        normalized, _ = await self.get_normalized(address, network_id)
        return self._aggregator.build_flow_graph(normalized, address)

    async def summary(self, address: str) -> MultiNetworkSummary:
        bundles = await self.get_all_normalized(address)
        logger.info(f"[SafeFlow] Summarizing {len(bundles)} networks for {address}")
        return self._aggregator.build_multi_network_summary(bundles, address)
