"""Test configuration and fixtures."""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from app.cache.memory import MemoryCacheBackend
from app.constants import SUPPORTED_NETWORKS, NetworkRegistry
from app.core.cache import CacheBackend
from app.core.fetcher import JsonFetcher
from app.providers.safe_api import SafeApiClient
from app.services.chain_data import ChainDataService
from app.services.discovery import AccountDiscoveryService
from app.services.wallet import SafeFlowService

SAFE = "0x1111111111111111111111111111111111111111"
ALICE = "0xaAaAaAaaAaAaAaaAaAAAAAAAAaaaAaAaAaaAaaAa"
BOB = "0xBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBb"
CAROL = "0xcCcCcccCcCcCcCCcCCcCcccCCcCcCcCcCcCccCcC"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class FakeFetcher(JsonFetcher):
    """
    Canned responses keyed by exact URL.

    A value that is an exception instance is raised. Unknown URLs answer None,
    like a 404.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[str] = []
        self.required: dict[str, bool] = {}
        self.closed = False

    async def fetch(self, url: str, *, required: bool = True) -> Any | None:
        self.calls.append(url)
        self.required[url] = required
        response = self.responses.get(url)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that returns at once and records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def api(network_id: int, path: str) -> str:
    """Transaction service URL as built by the registry."""
    return f"{SUPPORTED_NETWORKS[network_id].tx_service_url}/api/v1{path}"


def safe_info(address: str = SAFE, threshold: int = 2) -> dict[str, Any]:
    return {
        "address": address,
        "nonce": 7,
        "threshold": threshold,
        "owners": [ALICE, BOB, CAROL],
        "modules": [],
        "fallbackHandler": None,
        "guard": None,
        "version": "1.3.0",
    }


ALL_TXS = f"/safes/{SAFE}/all-transactions/?limit=100&ordering=-executionDate&executed=true"


def seed_safe(fetcher: FakeFetcher) -> None:
    """A Safe on Ethereum with one native inflow and one USDC outflow."""
    fetcher.responses[api(1, f"/safes/{SAFE}/")] = safe_info()
    fetcher.responses[api(1, ALL_TXS)] = {
        "results": [
            {
                "txType": "MULTISIG_TRANSACTION",
                "safeTxHash": "0x02",
                "to": USDC,
                "value": "0",
                "executionDate": "2024-03-20T00:00:00Z",
                "transfers": [
                    {
                        "type": "ERC20_TRANSFER",
                        "from": SAFE,
                        "to": BOB,
                        "value": "100000000",
                        "tokenInfo": {"symbol": "USDC", "decimals": 6},
                    }
                ],
            },
            {
                "txType": "ETHEREUM_TRANSACTION",
                "executionDate": "2024-01-10T00:00:00Z",
                "transfers": [
                    {
                        "type": "ETHER_TRANSFER",
                        "from": ALICE,
                        "to": SAFE,
                        "value": "2500000000000000000",
                    }
                ],
            },
        ],
        "next": None,
    }


def make_service(fetcher: FakeFetcher, sleep: SleepRecorder) -> SafeFlowService:
    client = SafeApiClient(fetcher, sleep=sleep)
    return SafeFlowService(
        discovery=AccountDiscoveryService(client, sleep=sleep),
        chain_data=ChainDataService(client, sleep=sleep),
        cache=MemoryCacheBackend(default_ttl=3600),
    )


@pytest.fixture
def sleep() -> SleepRecorder:
    """Provide an instant sleep."""
    return SleepRecorder()


@pytest.fixture
def registry() -> NetworkRegistry:
    """Provide the default network registry."""
    return NetworkRegistry()


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Provide an empty fake fetcher."""
    return FakeFetcher()


@pytest.fixture
def client(fetcher: FakeFetcher, registry: NetworkRegistry, sleep: SleepRecorder) -> SafeApiClient:
    """Provide a Safe API client over the fake fetcher."""
    return SafeApiClient(fetcher, registry=registry, sleep=sleep)


@pytest_asyncio.fixture
async def cache_backend() -> AsyncGenerator[CacheBackend, None]:
    """Provide a memory cache backend for tests."""
    cache = MemoryCacheBackend(default_ttl=3600)
    yield cache
    await cache.close()
