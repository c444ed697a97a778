"""Tests for timeline, flow graph and summary aggregation."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.constants import Direction, NodeRole
from app.models.safe import NormalizedBundle, Transfer
from app.services.aggregator import FlowAggregator

from tests.conftest import ALICE, BOB, CAROL, SAFE


def transfer(
    direction: Direction,
    counterparty: str | None,
    amount: str,
    symbol: str = "ETH",
    day: int | None = 1,
    month: int = 1,
    network_id: int = 1,
    usd: str | None = None,
) -> Transfer:
    return Transfer(
        timestamp=datetime(2024, month, day, tzinfo=timezone.utc) if day else None,
        direction=direction,
        counterparty=counterparty,
        symbol=symbol,
        decimals=18,
        amount=Decimal(amount),
        usd_estimate=Decimal(usd) if usd is not None else None,
        network_id=network_id,
    )


def bundle(network_id: int, *transfers: Transfer) -> NormalizedBundle:
    return NormalizedBundle(
        network_id=network_id,
        incoming=[t for t in transfers if t.direction == Direction.IN],
        outgoing=[t for t in transfers if t.direction == Direction.OUT],
    )


@pytest.fixture
def aggregator() -> FlowAggregator:
    return FlowAggregator()


class TestTimeline:
    """Tests for build_timeline."""

    def test_sorted_across_networks(self, aggregator: FlowAggregator) -> None:
        """Entries from every network interleave by timestamp."""
        bundles = {
            1: bundle(1, transfer(Direction.IN, ALICE, "1", day=5), transfer(Direction.OUT, BOB, "1", day=1)),
            137: bundle(137, transfer(Direction.IN, CAROL, "1", day=3, network_id=137)),
        }

        timeline = aggregator.build_timeline(bundles)

        assert [entry.date.day for entry in timeline] == [1, 3, 5]
        assert [entry.network for entry in timeline] == ["ethereum", "polygon", "ethereum"]
        assert timeline[0].counterparty == "0xBbBb...BbBb"
        assert timeline[0].counterparty_full == BOB

    def test_drops_missing_timestamps(self, aggregator: FlowAggregator) -> None:
        bundles = {1: bundle(1, transfer(Direction.IN, ALICE, "1", day=None))}

        assert aggregator.build_timeline(bundles) == []

    def test_idempotent(self, aggregator: FlowAggregator) -> None:
        """Re-sorting the output leaves it unchanged and non-decreasing."""
        bundles = {
            1: bundle(
                1,
                transfer(Direction.IN, ALICE, "1", day=2),
                transfer(Direction.IN, BOB, "2", day=2),
                transfer(Direction.OUT, CAROL, "3", day=1),
            )
        }

        timeline = aggregator.build_timeline(bundles)
        resorted = sorted(timeline, key=lambda entry: entry.date)

        assert resorted == timeline
        assert all(a.date <= b.date for a, b in zip(timeline, timeline[1:]))

    def test_usd_fallback(self, aggregator: FlowAggregator) -> None:
        """Without an estimate, the USD column carries the raw amount."""
        bundles = {1: bundle(1, transfer(Direction.IN, ALICE, "2.5"), transfer(Direction.IN, BOB, "7", "USDC", usd="7"))}

        timeline = aggregator.build_timeline(bundles)

        assert [(e.usd, e.has_usd_estimate) for e in timeline] == [
            (Decimal("2.5"), False),
            (Decimal("7"), True),
        ]


class TestFlowGraph:
    """Tests for build_flow_graph."""

    def test_single_self_node_and_edges_touch_it(self, aggregator: FlowAggregator) -> None:
        """Exactly one self node, at index 0, and every edge touches it."""
        graph = aggregator.build_flow_graph(
            bundle(
                1,
                transfer(Direction.IN, ALICE, "5"),
                transfer(Direction.OUT, BOB, "3"),
                transfer(Direction.OUT, CAROL, "1", "USDC"),
            ),
            SAFE,
        )

        assert [n.role for n in graph.nodes].count(NodeRole.SELF) == 1
        assert graph.nodes[0].role == NodeRole.SELF
        assert graph.nodes[0].label == "Safe Wallet"
        assert all(e.source == 0 or e.target == 0 for e in graph.edges)
        assert len(graph.edges) == 3

    def test_aggregates_per_counterparty_and_token(self, aggregator: FlowAggregator) -> None:
        """Same counterparty and token collapse into one edge, case-insensitively."""
        graph = aggregator.build_flow_graph(
            bundle(
                1,
                transfer(Direction.IN, ALICE, "1"),
                transfer(Direction.IN, ALICE.lower(), "2"),
                transfer(Direction.IN, ALICE, "4", "USDC"),
            ),
            SAFE,
        )

        values = sorted((e.token, e.value) for e in graph.edges)
        assert values == [("ETH", Decimal("3")), ("USDC", Decimal("4"))]
        assert len(graph.nodes) == 2

    def test_counterparty_in_both_directions_gets_two_nodes(
        self, aggregator: FlowAggregator
    ) -> None:
        graph = aggregator.build_flow_graph(
            bundle(1, transfer(Direction.IN, ALICE, "1"), transfer(Direction.OUT, ALICE, "1")),
            SAFE,
        )

        assert [n.role for n in graph.nodes] == [NodeRole.SELF, NodeRole.SOURCE, NodeRole.SINK]

    def test_noise_filter(self, aggregator: FlowAggregator) -> None:
        """Edges below 0.1% of the largest edge are dropped."""
        graph = aggregator.build_flow_graph(
            bundle(
                1,
                transfer(Direction.IN, ALICE, "10000"),
                transfer(Direction.OUT, BOB, "9.99"),
                transfer(Direction.OUT, CAROL, "10"),
            ),
            SAFE,
        )

        assert sorted(e.value for e in graph.edges) == [Decimal("10"), Decimal("10000")]
        threshold = max(e.value for e in graph.edges) * Decimal("0.001")
        assert all(e.value >= threshold for e in graph.edges)

    def test_missing_counterparty_is_skipped(self, aggregator: FlowAggregator) -> None:
        graph = aggregator.build_flow_graph(bundle(1, transfer(Direction.IN, None, "1")), SAFE)

        assert graph.edges == []
        assert len(graph.nodes) == 1

    def test_empty_bundle(self, aggregator: FlowAggregator) -> None:
        graph = aggregator.build_flow_graph(bundle(1), SAFE)

        assert len(graph.nodes) == 1
        assert graph.edges == []


class TestMultiNetworkSummary:
    """Tests for build_multi_network_summary."""

    def test_two_network_scenario(self, aggregator: FlowAggregator) -> None:
        """Native inflow falls back to its amount; stablecoin outflow is USD."""
        bundles = {
            1: bundle(
                1,
                transfer(Direction.IN, ALICE, "2.5", day=10),
                transfer(Direction.OUT, BOB, "100", "USDC", day=20, month=3, usd="100"),
            ),
            137: bundle(137),
        }

        summary = aggregator.build_multi_network_summary(bundles, SAFE)
        ethereum = summary.stats["ethereum"]

        assert ethereum.inflow == "~$3"
        assert ethereum.outflow == "~$100"
        assert ethereum.transfers == 2
        assert ethereum.addresses == 2
        assert ethereum.period == "Jan 2024 - Mar 2024"
        assert summary.stats["polygon"].period == "No data"
        assert summary.stats["polygon"].transfers == 0
        assert summary.stats["all"].transfers == 2

    def test_all_stats_union_counterparties(self, aggregator: FlowAggregator) -> None:
        """A counterparty seen on two networks is counted once overall."""
        bundles = {
            1: bundle(1, transfer(Direction.IN, ALICE, "1")),
            137: bundle(137, transfer(Direction.IN, ALICE.lower(), "1", network_id=137)),
        }

        summary = aggregator.build_multi_network_summary(bundles, SAFE)

        assert summary.stats["ethereum"].addresses == 1
        assert summary.stats["polygon"].addresses == 1
        assert summary.stats["all"].addresses == 1
        assert summary.stats["all"].inflow_value == Decimal("2")

    def test_flows_rounded_and_labelled(self, aggregator: FlowAggregator) -> None:
        bundles = {
            1: bundle(
                1,
                transfer(Direction.IN, ALICE, "1.5"),
                transfer(Direction.IN, ALICE, "1"),
                transfer(Direction.OUT, BOB, "40", "DAI", usd="40"),
            )
        }

        flows = aggregator.build_multi_network_summary(bundles, SAFE).flows["ethereum"]

        assert {(f.source, f.target, f.value, f.token) for f in flows} == {
            ("0xaAaA...aaAa", "Safe Wallet", 3, "ETH"),
            ("Safe Wallet", "0xBbBb...BbBb", 40, "DAI"),
        }

    def test_top_flows_bounded(self) -> None:
        """The combined list keeps only the largest flows."""
        aggregator = FlowAggregator(top_flows=3)
        counterparties = [f"0x{i:040x}" for i in range(1, 9)]
        bundles = {
            1: bundle(1, *[transfer(Direction.IN, c, str(i)) for i, c in enumerate(counterparties, 1)])
        }

        top = aggregator.build_multi_network_summary(bundles, SAFE).flows["all"]

        assert [f.value for f in top] == [8, 7, 6]

    def test_transfer_rows_newest_first(self, aggregator: FlowAggregator) -> None:
        bundles = {
            1: bundle(
                1,
                transfer(Direction.IN, ALICE, "1", day=1),
                transfer(Direction.IN, BOB, "1", day=None),
                transfer(Direction.IN, CAROL, "1", day=9),
            )
        }

        rows = aggregator.build_multi_network_summary(bundles, SAFE).transfers.incoming

        assert [r.counterparty for r in rows] == [CAROL, ALICE, BOB]
        assert rows[0].explorer_url == f"https://etherscan.io/address/{CAROL}"
