"""Per-network data retrieval for a Safe."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from app.constants import TxType
from app.core.exceptions import SafeFlowError
from app.core.pool import run_pooled
from app.models.safe import DiscoveredAccount, NetworkBundle
from app.providers.safe_api import SafeApiClient

logger = logging.getLogger(__name__)


def partition_transactions(
    transactions: Iterable[dict[str, Any]], address: str
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Split all-transactions records into outgoing and incoming candidates.

    Every multisig transaction is an outgoing candidate. Every ``transfers``
    entry of any transaction that moves value to the Safe from someone else is
    an incoming candidate, stamped with its transaction's execution date when
    it has none of its own.

    Returns:
        Tuple of (outgoing, incoming).
    """
    account = address.lower()
    outgoing: list[dict[str, Any]] = []
    incoming: list[dict[str, Any]] = []

    for tx in transactions:
        if not isinstance(tx, dict):
            continue
        if tx.get("txType") == TxType.MULTISIG.value:
            outgoing.append(tx)

        for transfer in tx.get("transfers") or []:
            if not isinstance(transfer, dict):
                continue
            recipient = (transfer.get("to") or "").lower()
            sender = (transfer.get("from") or "").lower()
            if recipient == account and sender != account:
                incoming.append(
                    {
                        **transfer,
                        "executionDate": transfer.get("executionDate") or tx.get("executionDate"),
                    }
                )

    return outgoing, incoming


class ChainDataService:
    """Fetches account state, balances and history of a Safe per network."""

    def __init__(
        self,
        client: SafeApiClient,
        request_delay: float = 0.6,
        network_delay: float = 0.5,
        network_concurrency: int = 1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the service.

        Args:
            client: Safe Transaction Service client.
            request_delay: Pause between the calls made for one network.
            network_delay: Pause after each network in ``fetch_all_bundles``.
            network_concurrency: Networks fetched at once. 1 keeps the
                fetches strictly sequential, which the shared upstream quota
                favours.
            sleep: Coroutine used for pauses.
        """
        self._client = client
        self._request_delay = request_delay
        self._network_delay = network_delay
        self._network_concurrency = network_concurrency
        self._sleep = sleep

    async def fetch_network_bundle(self, address: str, network_id: int) -> NetworkBundle:
        """
        Fetch one network's account configuration, balances and history.

        Raises:
            UnsupportedNetworkError: If ``network_id`` is not registered.
            RateLimitExhaustedError: If configuration or balances stay rate limited.
            ServiceError: If configuration or balances cannot be fetched.
        """
        logger.info(f"[ChainData] Fetching network {network_id} for {address}")
        account = await self._client.get_safe_info(address, network_id)
        await self._sleep(self._request_delay)
        balances = await self._client.get_balances(address, network_id)
        await self._sleep(self._request_delay)

        transactions, truncated = await self._client.get_all_transactions(address, network_id)
        outgoing, incoming = partition_transactions(transactions, address)

        logger.info(
            f"[ChainData] Network {network_id}: {len(transactions)} transactions, "
            f"{len(outgoing)} outgoing, {len(incoming)} incoming"
            + (" (truncated)" if truncated else "")
        )
        return NetworkBundle(
            network_id=network_id,
            account=account,
            balances=balances,
            outgoing=outgoing,
            incoming=incoming,
            truncated=truncated,
        )

    async def fetch_all_bundles(
        self, address: str, discovered: Iterable[DiscoveredAccount | int]
    ) -> dict[int, NetworkBundle]:
        """
        Fetch bundles for every discovered network.

        A network that fails is logged and left out; it never aborts the
        others. The mapping is assembled only after every fetch has finished.

        Returns:
            Mapping of network id to bundle, in discovery order.
        """
        network_ids = [
            item.network_id if isinstance(item, DiscoveredAccount) else int(item)
            for item in discovered
        ]

        def make_task(network_id: int):
            async def task() -> NetworkBundle:
                try:
                    return await self.fetch_network_bundle(address, network_id)
                finally:
                    await self._sleep(self._network_delay)
            return task

        results = await run_pooled(
            [make_task(network_id) for network_id in network_ids],
            concurrency=self._network_concurrency,
            return_exceptions=True,
        )

        bundles: dict[int, NetworkBundle] = {}
        for network_id, result in zip(network_ids, results):
            if isinstance(result, SafeFlowError):
                logger.warning(f"[ChainData] Failed to fetch network {network_id}, skipping: {result.message}")
            elif isinstance(result, BaseException):
                logger.warning(f"[ChainData] Failed to fetch network {network_id}, skipping: {result}")
            else:
                bundles[network_id] = result
        return bundles
