"""Safe Transaction Service API client."""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from app.constants import NATIVE_DECIMALS, NetworkRegistry
from app.core.exceptions import SafeFlowError
from app.core.fetcher import JsonFetcher
from app.core.formatting import scale_amount
from app.models.safe import AccountState, Balance

logger = logging.getLogger(__name__)


class SafeApiClient:
    """
    Typed reads over the Safe Transaction Service of every registered network.

    All HTTP goes through the injected ``JsonFetcher`` so tests can swap in
    canned responses.
    """

    DEFAULT_PAGE_CAP = 500

    def __init__(
        self,
        fetcher: JsonFetcher,
        registry: NetworkRegistry | None = None,
        page_size: int = 100,
        max_records: int = 3000,
        page_delay: float = 0.4,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the client.

        Args:
            fetcher: Resilient JSON fetcher.
            registry: Networks to address; defaults to every supported one.
            page_size: ``limit`` query parameter for paginated endpoints.
            max_records: Cap on all-transactions records per network.
            page_delay: Pause between page requests in seconds.
            sleep: Coroutine used for pauses.
        """
        self._fetcher = fetcher
        self._registry = registry if registry is not None else NetworkRegistry()
        self._page_size = page_size
        self._max_records = max_records
        self._page_delay = page_delay
        self._sleep = sleep

    async def get_safe_info(
        self, address: str, network_id: int, required: bool = True
    ) -> AccountState | None:
        """Owners, threshold, nonce and modules of a Safe, or None if absent."""
        data = await self._fetcher.fetch(
            self._registry.api_url(network_id, f"/safes/{address}/"), required=required
        )
        if not data:
            return None
        try:
            return AccountState(
                address=data.get("address") or address,
                nonce=data.get("nonce") or 0,
                threshold=data.get("threshold") or 0,
                owners=data.get("owners") or [],
                modules=data.get("modules") or [],
                fallback_handler=data.get("fallbackHandler"),
                guard=data.get("guard"),
                version=data.get("version"),
                network_id=network_id,
            )
        except (AttributeError, ValidationError) as e:
            logger.warning(f"[SafeAPI] Unexpected Safe info payload on {network_id}: {e}")
            return None

    async def get_balances(self, address: str, network_id: int) -> list[Balance]:
        """Native and trusted, non-spam token balances."""
        data = await self._fetcher.fetch(
            self._registry.api_url(
                network_id, f"/safes/{address}/balances/?trusted=true&exclude_spam=true"
            )
        )
        if not data:
            return []
        if not isinstance(data, list):
            logger.warning(
                f"[SafeAPI] Unexpected balances payload on {network_id}: {type(data).__name__}"
            )
            return []

        native_symbol = self._registry.get(network_id).symbol
        balances = []
        for item in data:
            if not isinstance(item, dict):
                logger.debug(f"[SafeAPI] Skipping malformed balance entry on {network_id}")
                continue
            token = item.get("token")
            if not isinstance(token, dict):
                token = None
            raw = str(item.get("balance") or "0")
            if token:
                decimals = int(token.get("decimals") or 0)
                places = 4 if decimals > 6 else 2
                symbol = token.get("symbol") or "???"
            else:
                decimals = NATIVE_DECIMALS
                places = 4
                symbol = native_symbol
            formatted = scale_amount(raw, decimals).quantize(Decimal(1).scaleb(-places))
            balances.append(
                Balance(
                    token_address=item.get("tokenAddress"),
                    name=token.get("name") if token else None,
                    symbol=symbol,
                    decimals=decimals,
                    logo_uri=token.get("logoUri") if token else None,
                    balance=raw,
                    balance_formatted=str(formatted),
                    fiat_balance=str(item.get("fiatBalance") or "0"),
                    fiat_conversion=str(item.get("fiatConversion") or "0"),
                )
            )
        return balances

    async def paginate(self, url: str, cap: int) -> tuple[list[dict[str, Any]], bool]:
        """
        Follow ``next`` cursors from ``url`` collecting ``results``.

        Stops when the cursor runs out, when ``cap`` records are held, or when
        a page cannot be fetched. Pages already collected are kept on failure.

        Returns:
            Tuple of (records, truncated) where ``truncated`` tells whether the
            history was cut short by the cap or an error.
        """
        records: list[dict[str, Any]] = []
        next_url: str | None = url
        truncated = False

        while next_url:
            try:
                data = await self._fetcher.fetch(next_url, required=False)
            except SafeFlowError as e:
                logger.warning(
                    f"[SafeAPI] Page fetch failed after {len(records)} records, "
                    f"keeping partial history: {e}"
                )
                truncated = True
                break
            if data is not None and not isinstance(data, dict):
                logger.warning(
                    f"[SafeAPI] Unexpected page payload after {len(records)} records, "
                    f"keeping partial history: {type(data).__name__}"
                )
                truncated = bool(records)
                break
            if not data or not isinstance(data.get("results"), list):
                truncated = bool(records) and data is None
                break

            records.extend(data["results"])
            if len(records) >= cap:
                truncated = len(records) > cap or bool(data.get("next"))
                del records[cap:]
                logger.info(f"[SafeAPI] Record cap {cap} reached, stopping pagination")
                break

            following = data.get("next")
            if following == next_url:
                break
            next_url = following
            if next_url:
                await self._sleep(self._page_delay)

        return records, truncated

    async def get_all_transactions(
        self, address: str, network_id: int
    ) -> tuple[list[dict[str, Any]], bool]:
        """Executed multisig, module and incoming transactions, newest first."""
        url = self._registry.api_url(
            network_id,
            f"/safes/{address}/all-transactions/?limit={self._page_size}"
            f"&ordering=-executionDate&executed=true",
        )
        return await self.paginate(url, self._max_records)

    async def get_all_multisig_transactions(
        self, address: str, network_id: int
    ) -> list[dict[str, Any]]:
        """Multisig transactions, newest first, executed or not."""
        url = self._registry.api_url(
            network_id,
            f"/safes/{address}/multisig-transactions/?limit={self._page_size}"
            f"&ordering=-executionDate",
        )
        records, _ = await self.paginate(url, self.DEFAULT_PAGE_CAP)
        return records

    async def get_all_incoming_transfers(
        self, address: str, network_id: int
    ) -> list[dict[str, Any]]:
        """Incoming native and token transfers."""
        url = self._registry.api_url(
            network_id, f"/safes/{address}/incoming-transfers/?limit={self._page_size}"
        )
        records, _ = await self.paginate(url, self.DEFAULT_PAGE_CAP)
        return records

    async def health_check(self, network_id: int) -> dict[str, Any]:
        """Reachability of one network's transaction service."""
        network = self._registry.get(network_id)
        try:
            about = await self._fetcher.fetch(self._registry.api_url(network_id, "/about/"))
        except SafeFlowError as e:
            return {"network": network.name, "status": "unhealthy", "error": e.message}
        return {
            "network": network.name,
            "status": "healthy" if about else "degraded",
            "version": (about or {}).get("version"),
        }
