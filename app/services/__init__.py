"""Services package."""

from app.services.aggregator import FlowAggregator
from app.services.chain_data import ChainDataService, partition_transactions
from app.services.discovery import AccountDiscoveryService
from app.services.normalizer import TransferNormalizer, resolve_direction
from app.services.wallet import SafeFlowService

__all__ = [
    "AccountDiscoveryService",
    "ChainDataService",
    "FlowAggregator",
    "SafeFlowService",
    "TransferNormalizer",
    "partition_transactions",
    "resolve_direction",
]
