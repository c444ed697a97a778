"""
Check that every network's Safe Transaction Service is reachable.

Run: python scripts/verify_networks.py [SAFE_ADDRESS]

With an address, also reports on which networks it is a deployed Safe.
"""

import asyncio
import sys
from pathlib import Path

# Add app to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import get_settings
from app.constants import NetworkRegistry
from app.providers.http_fetcher import ResilientFetcher
from app.providers.safe_api import SafeApiClient
from app.services.discovery import AccountDiscoveryService


async def verify_services(client: SafeApiClient, registry: NetworkRegistry) -> bool:
    """Probe /about/ on every network."""
    print("\n🔍 Checking transaction services...")
    all_ok = True
    for network in registry:
        health = await client.health_check(network.id)
        if health["status"] == "healthy":
            print(f"   ✅ {network.name}: OK (v{health.get('version')})")
        else:
            all_ok = False
            print(f"   ❌ {network.name}: {health['status']} {health.get('error', '')}")
    return all_ok


async def verify_discovery(client: SafeApiClient, registry: NetworkRegistry, address: str) -> None:
    """Report the networks on which ``address`` is a Safe."""
    print(f"\n🔍 Discovering {address}...")
    discovered = await AccountDiscoveryService(client, registry=registry).discover_accounts(address)
    if not discovered:
        print("   ⚠️  No Safe found on any supported network")
    for item in discovered:
        print(
            f"   ✅ {item.network.name}: {item.account.threshold}/"
            f"{len(item.account.owners)} owners, nonce {item.account.nonce}"
        )


async def main() -> int:
    settings = get_settings()
    registry = NetworkRegistry()
    fetcher = ResilientFetcher(
        max_retries=settings.max_retries,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
        requests_per_second=settings.requests_per_second,
        timeout=settings.request_timeout,
    )
    client = SafeApiClient(fetcher, registry=registry)

    print("=" * 60)
    print(f"   {settings.app_name} network verification")
    print("=" * 60)

    try:
        ok = await verify_services(client, registry)
        if len(sys.argv) > 1:
            await verify_discovery(client, registry, sys.argv[1])
    finally:
        await fetcher.close()

    print(f"\n   {fetcher.request_count} requests issued")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
