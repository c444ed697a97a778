"""Aggregated outputs consumed by the chart layer."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.constants import Direction, NodeRole
from app.models.safe import Amount


class TimelineEntry(BaseModel):
    """One transfer positioned in time across all networks."""

    date: datetime
    direction: Direction
    amount: Amount
    token: str
    usd: Amount
    has_usd_estimate: bool
    network_id: int
    network: str
    counterparty: str
    counterparty_full: str | None = None


class FlowNode(BaseModel):
    """Node of a flow graph: the Safe itself or a counterparty."""

    label: str
    role: NodeRole
    address: str


class FlowEdge(BaseModel):
    """Aggregated value between a counterparty node and the Safe node."""

    source: int
    target: int
    value: Amount
    token: str


class FlowGraph(BaseModel):
    """Single-network flow graph; node 0 is always the Safe."""

    nodes: list[FlowNode] = Field(default_factory=list)
    edges: list[FlowEdge] = Field(default_factory=list)


class NetworkStats(BaseModel):
    """Headline statistics for one network, or for all of them."""

    transfers: int = 0
    inflow: str = "~$0"
    outflow: str = "~$0"
    inflow_value: Amount = Decimal("0")
    outflow_value: Amount = Decimal("0")
    addresses: int = 0
    period: str = "No data"
    first_seen: datetime | None = None
    last_seen: datetime | None = None


class FlowEntry(BaseModel):
    """Counterparty to Safe (or Safe to counterparty) flow with rounded value."""

    source: str
    target: str
    value: int
    token: str
    network: str


class TransferRow(BaseModel):
    """Flat transfer row for the all-transfers tables."""

    network_id: int
    network: str
    date: datetime | None = None
    counterparty: str | None = None
    counterparty_short: str
    token: str
    amount: Amount
    usd: Amount
    explorer_url: str = "#"


class AllTransfers(BaseModel):
    """Incoming and outgoing rows, newest first."""

    incoming: list[TransferRow] = Field(default_factory=list)
    outgoing: list[TransferRow] = Field(default_factory=list)


class MultiNetworkSummary(BaseModel):
    """Per-network and combined statistics, flow lists and transfer rows."""

    stats: dict[str, NetworkStats] = Field(default_factory=dict)
    flows: dict[str, list[FlowEntry]] = Field(default_factory=dict)
    transfers: AllTransfers = Field(default_factory=AllTransfers)
