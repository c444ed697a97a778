"""Domain models package."""

from app.models.flows import (
    AllTransfers,
    FlowEdge,
    FlowEntry,
    FlowGraph,
    FlowNode,
    MultiNetworkSummary,
    NetworkStats,
    TimelineEntry,
    TransferRow,
)
from app.models.safe import (
    AccountState,
    Balance,
    DiscoveredAccount,
    NetworkBundle,
    NetworkInfo,
    NormalizedBundle,
    Transfer,
)

__all__ = [
    "AccountState",
    "AllTransfers",
    "Balance",
    "DiscoveredAccount",
    "FlowEdge",
    "FlowEntry",
    "FlowGraph",
    "FlowNode",
    "MultiNetworkSummary",
    "NetworkBundle",
    "NetworkInfo",
    "NetworkStats",
    "NormalizedBundle",
    "TimelineEntry",
    "Transfer",
    "TransferRow",
]
