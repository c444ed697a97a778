"""Multi-network Safe account discovery."""

import asyncio
import logging
from typing import Awaitable, Callable

from app.constants import NetworkRegistry
from app.core.exceptions import SafeFlowError
from app.models.safe import DiscoveredAccount, NetworkInfo
from app.providers.safe_api import SafeApiClient

logger = logging.getLogger(__name__)


class AccountDiscoveryService:
    """
    Finds the networks on which an address is a deployed Safe.

    Networks are probed one after another with a pause in between: every
    transaction service draws from the same per-client quota, and probing in
    parallel produces more 429s than backoff can absorb.
    """

    def __init__(
        self,
        client: SafeApiClient,
        registry: NetworkRegistry | None = None,
        delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the discovery service.

        Args:
            client: Safe Transaction Service client.
            registry: Networks to probe.
            delay: Pause between probes in seconds.
            sleep: Coroutine used for pauses.
        """
        self._client = client
        self._registry = registry if registry is not None else NetworkRegistry()
        self._delay = delay
        self._sleep = sleep

    async def discover_accounts(self, address: str) -> list[DiscoveredAccount]:
        """
        Probe every registered network for a Safe at ``address``.

        A missing Safe, an exhausted retry budget or any service error on one
        network just leaves that network out of the result.

        Returns:
            Discovered accounts in registry order.
        """
        logger.info(f"[Discovery] Probing {len(self._registry)} networks for {address}")
        discovered: list[DiscoveredAccount] = []

        for index, network in enumerate(self._registry):
            if index:
                await self._sleep(self._delay)
            try:
                account = await self._client.get_safe_info(address, network.id, required=False)
            except SafeFlowError as e:
                logger.debug(f"[Discovery] Probe failed on {network.name}: {e.message}")
                continue
            if account is None:
                logger.debug(f"[Discovery] No Safe on {network.name}")
                continue

            logger.info(
                f"[Discovery] Found Safe on {network.name} "
                f"({account.threshold}/{len(account.owners)} owners)"
            )
            discovered.append(
                DiscoveredAccount(
                    network_id=network.id,
                    network=NetworkInfo.from_config(network),
                    account=account,
                )
            )

        return discovered
