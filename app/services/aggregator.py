"""Aggregation of normalized transfers into chart-ready structures."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Mapping, NamedTuple

from app.constants import (
    ALL_NETWORKS_KEY,
    EDGE_NOISE_RATIO,
    TOP_FLOWS_LIMIT,
    WALLET_LABEL,
    Direction,
    NetworkRegistry,
    NodeRole,
)
from app.core.formatting import format_period, format_usd, round_half_up, shorten_address
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
from app.models.safe import NormalizedBundle, Transfer

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class FlowKey(NamedTuple):
    """Aggregation key for edges: one per counterparty and token."""

    counterparty: str
    token: str


class _RunningStats:
    """Accumulator behind ``NetworkStats``."""

    def __init__(self) -> None:
        self.transfers = 0
        self.inflow = Decimal("0")
        self.outflow = Decimal("0")
        self.addresses: set[str] = set()
        self.first_seen: datetime | None = None
        self.last_seen: datetime | None = None

    def add(self, transfer: Transfer) -> None:
        self.transfers += 1
        if transfer.direction == Direction.IN:
            self.inflow += transfer.usd_value
        else:
            self.outflow += transfer.usd_value
        if transfer.counterparty:
            self.addresses.add(transfer.counterparty.lower())
        self.see(transfer.timestamp)

    def see(self, moment: datetime | None) -> None:
        if moment is None:
            return
        if self.first_seen is None or moment < self.first_seen:
            self.first_seen = moment
        if self.last_seen is None or moment > self.last_seen:
            self.last_seen = moment

    def merge(self, other: "_RunningStats") -> None:
        self.transfers += other.transfers
        self.inflow += other.inflow
        self.outflow += other.outflow
        self.addresses |= other.addresses
        self.see(other.first_seen)
        self.see(other.last_seen)

    def freeze(self) -> NetworkStats:
        return NetworkStats(
            transfers=self.transfers,
            inflow=format_usd(self.inflow),
            outflow=format_usd(self.outflow),
            inflow_value=self.inflow,
            outflow_value=self.outflow,
            addresses=len(self.addresses),
            period=format_period(self.first_seen, self.last_seen),
            first_seen=self.first_seen,
            last_seen=self.last_seen,
        )


class FlowAggregator:
    """Builds the timeline, flow graph and multi-network summary."""

    def __init__(
        self,
        registry: NetworkRegistry | None = None,
        top_flows: int = TOP_FLOWS_LIMIT,
        noise_ratio: Decimal = EDGE_NOISE_RATIO,
    ) -> None:
        self._registry = registry if registry is not None else NetworkRegistry()
        self._top_flows = top_flows
        self._noise_ratio = noise_ratio

    def build_timeline(self, bundles: Mapping[int, NormalizedBundle]) -> list[TimelineEntry]:
        """
        Every transfer of every network, oldest first.

        Transfers without a usable timestamp are left out. The sort is stable,
        so re-sorting the output changes nothing.
        """
        entries: list[TimelineEntry] = []
        for network_id, bundle in bundles.items():
            network = self._registry.name_key(network_id)
            for transfer in [*bundle.incoming, *bundle.outgoing]:
                if transfer.timestamp is None:
                    continue
                entries.append(
                    TimelineEntry(
                        date=transfer.timestamp,
                        direction=transfer.direction,
                        amount=transfer.amount,
                        token=transfer.symbol,
                        usd=transfer.usd_value,
                        has_usd_estimate=transfer.has_usd_estimate,
                        network_id=network_id,
                        network=network,
                        counterparty=shorten_address(transfer.counterparty),
                        counterparty_full=transfer.counterparty,
                    )
                )

        entries.sort(key=lambda entry: entry.date)
        return entries

    def build_flow_graph(self, bundle: NormalizedBundle, address: str) -> FlowGraph:
        """
        Single-network flow graph between the Safe and its counterparties.

        Node 0 is the Safe. Every counterparty gets one node per role, so an
        address that both sent and received shows up as a source and a sink.
        Value is summed per (counterparty, token) and direction into one edge;
        edges worth less than 0.1% of the largest edge are dropped as dust.
        """
        nodes: list[FlowNode] = [
            FlowNode(label=WALLET_LABEL, role=NodeRole.SELF, address=address)
        ]
        node_index: dict[tuple[NodeRole, str], int] = {}

        def node_for(counterparty: str, role: NodeRole) -> int:
            key = (role, counterparty.lower())
            if key not in node_index:
                node_index[key] = len(nodes)
                nodes.append(
                    FlowNode(
                        label=shorten_address(counterparty),
                        role=role,
                        address=counterparty,
                    )
                )
            return node_index[key]

        inflows = self._sum_by_counterparty(bundle.incoming, address)
        outflows = self._sum_by_counterparty(bundle.outgoing, address)

        edges: list[FlowEdge] = []
        for key, (counterparty, value) in inflows.items():
            edges.append(
                FlowEdge(
                    source=node_for(counterparty, NodeRole.SOURCE),
                    target=0,
                    value=value,
                    token=key.token,
                )
            )
        for key, (counterparty, value) in outflows.items():
            edges.append(
                FlowEdge(
                    source=0,
                    target=node_for(counterparty, NodeRole.SINK),
                    value=value,
                    token=key.token,
                )
            )

        max_value = max([edge.value for edge in edges] + [Decimal("1")])
        threshold = max_value * self._noise_ratio
        kept = [edge for edge in edges if edge.value >= threshold]
        if len(kept) < len(edges):
            logger.debug(f"[Aggregator] Dropped {len(edges) - len(kept)} dust edges below {threshold}")

        return FlowGraph(nodes=nodes, edges=kept)

    @staticmethod
    def _sum_by_counterparty(
        transfers: list[Transfer], address: str
    ) -> dict[FlowKey, tuple[str, Decimal]]:
        totals: dict[FlowKey, tuple[str, Decimal]] = {}
        for transfer in transfers:
            counterparty = transfer.counterparty
            if not counterparty or counterparty.lower() == address.lower():
                continue
            key = FlowKey(counterparty.lower(), transfer.symbol)
            first_seen, running = totals.get(key, (counterparty, Decimal("0")))
            totals[key] = (first_seen, running + transfer.amount)
        return totals

    def build_multi_network_summary(
        self, bundles: Mapping[int, NormalizedBundle], address: str
    ) -> MultiNetworkSummary:
        """
        Statistics, flow lists and transfer rows across networks.

        Values use the USD estimate where there is one and the raw token
        amount otherwise. The ``all`` flow list keeps the largest flows of
        every network, capped at ``top_flows``.
        """
        stats: dict[str, NetworkStats] = {}
        flows: dict[str, list[FlowEntry]] = {}
        rows = AllTransfers()
        combined = _RunningStats()

        for network_id, bundle in bundles.items():
            network = self._registry.name_key(network_id)
            running = _RunningStats()
            inflow: dict[FlowKey, tuple[str, Decimal]] = {}
            outflow: dict[FlowKey, tuple[str, Decimal]] = {}

            for transfer in [*bundle.incoming, *bundle.outgoing]:
                running.add(transfer)
                counterparty = transfer.counterparty or "Unknown"
                key = FlowKey(counterparty.lower(), transfer.symbol)
                bucket = inflow if transfer.direction == Direction.IN else outflow
                first_seen, total = bucket.get(key, (counterparty, Decimal("0")))
                bucket[key] = (first_seen, total + transfer.usd_value)

                row = TransferRow(
                    network_id=network_id,
                    network=network,
                    date=transfer.timestamp,
                    counterparty=transfer.counterparty,
                    counterparty_short=shorten_address(transfer.counterparty),
                    token=transfer.symbol,
                    amount=transfer.amount,
                    usd=transfer.usd_value,
                    explorer_url=(
                        self._registry.explorer_address_url(transfer.counterparty, network_id)
                        if transfer.counterparty
                        else "#"
                    ),
                )
                if transfer.direction == Direction.IN:
                    rows.incoming.append(row)
                else:
                    rows.outgoing.append(row)

            network_flows = [
                FlowEntry(
                    source=shorten_address(counterparty),
                    target=WALLET_LABEL,
                    value=int(round_half_up(total)),
                    token=key.token,
                    network=network,
                )
                for key, (counterparty, total) in inflow.items()
            ] + [
                FlowEntry(
                    source=WALLET_LABEL,
                    target=shorten_address(counterparty),
                    value=int(round_half_up(total)),
                    token=key.token,
                    network=network,
                )
                for key, (counterparty, total) in outflow.items()
            ]

            stats[network] = running.freeze()
            flows[network] = network_flows
            combined.merge(running)

        stats[ALL_NETWORKS_KEY] = combined.freeze()
        every_flow = [flow for network_flows in flows.values() for flow in network_flows]
        every_flow.sort(key=lambda flow: flow.value, reverse=True)
        flows[ALL_NETWORKS_KEY] = every_flow[: self._top_flows]

        newest_first = lambda row: row.date or _EPOCH  # noqa: E731
        rows.incoming.sort(key=newest_first, reverse=True)
        rows.outgoing.sort(key=newest_first, reverse=True)

        return MultiNetworkSummary(stats=stats, flows=flows, transfers=rows)
