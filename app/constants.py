"""Application constants and network configurations."""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from app.core.exceptions import UnsupportedNetworkError


class NetworkConfig(NamedTuple):
    """Configuration for a network served by a Safe Transaction Service."""

    id: int
    name: str
    slug: str
    tx_service_url: str
    explorer_url: str
    symbol: str
    color: str


# Supported networks keyed by chain id
SUPPORTED_NETWORKS: dict[int, NetworkConfig] = {
    1: NetworkConfig(
        1, "Ethereum", "eth",
        "https://safe-transaction-mainnet.safe.global",
        "https://etherscan.io", "ETH", "#627eea",
    ),
    10: NetworkConfig(
        10, "Optimism", "oeth",
        "https://safe-transaction-optimism.safe.global",
        "https://optimistic.etherscan.io", "ETH", "#ff0420",
    ),
    100: NetworkConfig(
        100, "Gnosis", "gno",
        "https://safe-transaction-gnosis-chain.safe.global",
        "https://gnosisscan.io", "xDAI", "#04795b",
    ),
    137: NetworkConfig(
        137, "Polygon", "pol",
        "https://safe-transaction-polygon.safe.global",
        "https://polygonscan.com", "POL", "#8247e5",
    ),
    8453: NetworkConfig(
        8453, "Base", "base",
        "https://safe-transaction-base.safe.global",
        "https://basescan.org", "ETH", "#0052ff",
    ),
    42161: NetworkConfig(
        42161, "Arbitrum", "arb1",
        "https://safe-transaction-arbitrum.safe.global",
        "https://arbiscan.io", "ETH", "#28a0f0",
    ),
    43114: NetworkConfig(
        43114, "Avalanche", "avax",
        "https://safe-transaction-avalanche.safe.global",
        "https://snowtrace.io", "AVAX", "#e84142",
    ),
}

NATIVE_DECIMALS = 18
DEFAULT_TOKEN_DECIMALS = 18

# Tokens assumed to trade at parity with one US dollar
STABLECOINS: frozenset[str] = frozenset({
    "USDC", "USDT", "DAI", "WXDAI", "BUSD", "TUSD", "USDP", "FRAX",
    "LUSD", "GUSD", "sUSD", "USDD", "USDGLO", "USD+", "USDe", "crvUSD",
    "GHO", "PYUSD", "DOLA", "Yield-USD", "yUSD",
})

WALLET_LABEL = "Safe Wallet"
ALL_NETWORKS_KEY = "all"
TOP_FLOWS_LIMIT = 15
EDGE_NOISE_RATIO = Decimal("0.001")


class TxType(str, Enum):
    """Transaction kinds returned by the all-transactions endpoint."""

    MULTISIG = "MULTISIG_TRANSACTION"
    MODULE = "MODULE_TRANSACTION"
    ETHEREUM = "ETHEREUM_TRANSACTION"


class TransferType(str, Enum):
    """Transfer kinds carried in enriched ``transfers`` arrays."""

    ETHER = "ETHER_TRANSFER"
    ERC20 = "ERC20_TRANSFER"
    ERC721 = "ERC721_TRANSFER"


class Direction(str, Enum):
    """Direction of value relative to the tracked account."""

    IN = "in"
    OUT = "out"


class NodeRole(str, Enum):
    """Role of a node in a flow graph."""

    SELF = "self"
    SOURCE = "source"
    SINK = "sink"


class NetworkRegistry:
    """Lookup over a fixed set of networks; immutable after construction."""

    def __init__(self, networks: dict[int, NetworkConfig] | None = None) -> None:
        self._networks = dict(SUPPORTED_NETWORKS if networks is None else networks)

    def __iter__(self):
        return iter(self._networks.values())

    def __len__(self) -> int:
        return len(self._networks)

    def __contains__(self, network_id: object) -> bool:
        return network_id in self._networks

    def get(self, network_id: int) -> NetworkConfig:
        """Look up a network or raise ``UnsupportedNetworkError``."""
        network = self._networks.get(network_id)
        if network is None:
            raise UnsupportedNetworkError(network_id)
        return network

    def name_key(self, network_id: int) -> str:
        """Lower-cased display name used to key summaries, e.g. ``ethereum``."""
        network = self._networks.get(network_id)
        return network.name.lower() if network else f"chain-{network_id}"

    def native_symbol(self, network_id: int) -> str:
        network = self._networks.get(network_id)
        return network.symbol if network else "ETH"

    def api_url(self, network_id: int, path: str) -> str:
        """Build a Safe Transaction Service URL for a network."""
        return f"{self.get(network_id).tx_service_url}/api/v1{path}"

    def explorer_address_url(self, address: str, network_id: int) -> str:
        """Block explorer link for an address, or ``#`` for unknown networks."""
        network = self._networks.get(network_id)
        if network is None:
            return "#"
        return f"{network.explorer_url}/address/{address}"

    def explorer_tx_url(self, tx_hash: str, network_id: int) -> str:
        """Block explorer link for a transaction, or ``#`` for unknown networks."""
        network = self._networks.get(network_id)
        if network is None:
            return "#"
        return f"{network.explorer_url}/tx/{tx_hash}"
