"""Normalization of Safe transactions into canonical transfers."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from app.constants import (
    DEFAULT_TOKEN_DECIMALS,
    NATIVE_DECIMALS,
    STABLECOINS,
    Direction,
    TransferType,
    NetworkRegistry,
)
from app.core.exceptions import MalformedRecordError
from app.core.formatting import scale_amount
from app.models.safe import NetworkBundle, NormalizedBundle, Transfer
from app.models.transactions import (
    ChainTransaction,
    DecodedCall,
    MultisigTransaction,
    TransferRecord,
    decode_record,
)

logger = logging.getLogger(__name__)

TOKEN_SYMBOL_UNKNOWN = "Token"


def _same(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


def resolve_direction(
    sender: str | None, recipient: str | None, account: str
) -> Direction | None:
    """``out`` if the account sent, ``in`` if it received, None otherwise."""
    sent = _same(sender, account)
    received = _same(recipient, account)
    if sent and not received:
        return Direction.OUT
    if received and not sent:
        return Direction.IN
    return None


class TransferNormalizer:
    """
    Turns raw Safe Transaction Service records into ``Transfer`` objects.

    Three shapes are understood: a direct native value transfer, a decoded
    ERC20 ``transfer(to, value)`` call, and a ``multiSend`` batch whose inner
    transactions are expanded recursively in order. Enriched ``transfers[]``
    entries, which carry exact token decimals, are preferred over decoded
    calldata, where token decimals are unknown and default to 18.

    Records that match no known shape are skipped, never raised.
    """

    def __init__(
        self,
        registry: NetworkRegistry | None = None,
        stablecoins: Iterable[str] = STABLECOINS,
    ) -> None:
        self._registry = registry if registry is not None else NetworkRegistry()
        self._stablecoins = frozenset(stablecoins)

    def estimate_usd(self, amount: Decimal, symbol: str) -> Decimal | None:
        """1:1 USD estimate for recognized stablecoins, None for anything else."""
        if symbol in self._stablecoins:
            return amount
        return None

    def _make_transfer(
        self,
        *,
        sender: str | None,
        recipient: str | None,
        account: str,
        raw_value: Any,
        decimals: int,
        symbol: str,
        network_id: int,
        timestamp: datetime | None,
        token_name: str | None = None,
        token_address: str | None = None,
        tx_hash: str | None = None,
    ) -> Transfer | None:
        direction = resolve_direction(sender, recipient, account)
        if direction is None:
            return None
        amount = scale_amount(raw_value, decimals)
        if amount <= 0:
            return None
        return Transfer(
            timestamp=timestamp,
            direction=direction,
            counterparty=recipient if direction == Direction.OUT else sender,
            symbol=symbol,
            token_name=token_name,
            token_address=token_address,
            decimals=decimals,
            amount=amount,
            usd_estimate=self.estimate_usd(amount, symbol),
            network_id=network_id,
            tx_hash=tx_hash,
        )

    def from_transfer_record(
        self,
        record: TransferRecord,
        account: str,
        network_id: int,
        fallback_timestamp: datetime | None = None,
    ) -> Transfer | None:
        """Normalize one enriched transfer entry."""
        if record.transfer_type == TransferType.ETHER:
            symbol = self._registry.native_symbol(network_id)
            name = "Native"
        elif record.transfer_type == TransferType.ERC20:
            meta = record.metadata
            symbol = (meta.symbol if meta else None) or TOKEN_SYMBOL_UNKNOWN
            name = meta.name if meta else None
        else:
            # NFTs carry no fungible amount
            return None

        return self._make_transfer(
            sender=record.from_address,
            recipient=record.to_address,
            account=account,
            raw_value=record.value,
            decimals=record.decimals,
            symbol=symbol,
            network_id=network_id,
            timestamp=record.timestamp or fallback_timestamp,
            token_name=name,
            token_address=record.token_address,
            tx_hash=record.transaction_hash,
        )

    def expand_call(
        self,
        to: str | None,
        value: Any,
        decoded: DecodedCall | None,
        account: str,
        network_id: int,
        timestamp: datetime | None,
        tx_hash: str | None = None,
    ) -> list[Transfer]:
        """
        Transfers made by the Safe through one call, recursing into batches.

        The Safe is the sender of every call it executes, so native value
        goes from the account to ``to``, and a decoded ``transfer`` moves
        tokens of contract ``to`` from the account to the ``to`` parameter.
        """
        transfers: list[Transfer] = []

        if value not in (None, "", "0", 0):
            native = self._make_transfer(
                sender=account,
                recipient=to,
                account=account,
                raw_value=value,
                decimals=NATIVE_DECIMALS,
                symbol=self._registry.native_symbol(network_id),
                network_id=network_id,
                timestamp=timestamp,
                token_name="Native",
                tx_hash=tx_hash,
            )
            if native:
                transfers.append(native)

        if decoded is None:
            return transfers

        if decoded.method == "transfer":
            recipient = decoded.param("to")
            amount = decoded.param("value")
            if recipient and recipient.value:
                token = self._make_transfer(
                    sender=account,
                    recipient=str(recipient.value),
                    account=account,
                    raw_value=amount.value if amount else None,
                    decimals=DEFAULT_TOKEN_DECIMALS,
                    symbol=TOKEN_SYMBOL_UNKNOWN,
                    network_id=network_id,
                    timestamp=timestamp,
                    token_address=to,
                    tx_hash=tx_hash,
                )
                if token:
                    transfers.append(token)

        elif decoded.method == "multiSend":
            batch = decoded.param("transactions")
            for inner in (batch.value_decoded or []) if batch else []:
                transfers.extend(
                    self.expand_call(
                        inner.to,
                        inner.value,
                        inner.data_decoded,
                        account,
                        network_id,
                        timestamp,
                        tx_hash,
                    )
                )

        return transfers

    def _from_enriched(
        self,
        raw_transfers: list[dict[str, Any]],
        account: str,
        network_id: int,
        fallback_timestamp: datetime | None,
    ) -> list[Transfer]:
        transfers = []
        for raw in raw_transfers:
            try:
                record = decode_record(raw)
            except MalformedRecordError as e:
                logger.debug(f"[Normalizer] Skipping transfer entry on {network_id}: {e.message}")
                continue
            if not isinstance(record, TransferRecord):
                continue
            transfer = self.from_transfer_record(record, account, network_id, fallback_timestamp)
            if transfer:
                transfers.append(transfer)
        return transfers

    def normalize(self, raw: Any, account: str, network_id: int) -> list[Transfer]:
        """
        Normalize one raw record of any known shape.

        Returns:
            Zero or more transfers in which the account is sender or
            recipient, in the record's original order.
        """
        try:
            record = decode_record(raw)
        except MalformedRecordError as e:
            logger.debug(f"[Normalizer] Skipping record on {network_id}: {e.message}")
            return []

        if isinstance(record, TransferRecord):
            transfer = self.from_transfer_record(record, account, network_id)
            return [transfer] if transfer else []

        if isinstance(record, ChainTransaction):
            return self._from_enriched(
                record.transfers, account, network_id, record.timestamp
            )

        return self._from_multisig(record, account, network_id)

    def _from_multisig(
        self, tx: MultisigTransaction, account: str, network_id: int
    ) -> list[Transfer]:
        if not tx.is_executed:
            return []

        tx_hash = tx.transaction_hash or tx.safe_tx_hash
        enriched = self._from_enriched(tx.transfers, account, network_id, tx.timestamp)
        if any(t.direction == Direction.OUT for t in enriched):
            return enriched

        return enriched + self.expand_call(
            tx.to, tx.value, tx.data_decoded, account, network_id, tx.timestamp, tx_hash
        )

    def normalize_bundle(self, bundle: NetworkBundle, account: str) -> NormalizedBundle:
        """Normalize a fetched bundle into directional transfer lists."""
        incoming: list[Transfer] = []
        for raw in bundle.incoming:
            incoming.extend(
                t for t in self.normalize(raw, account, bundle.network_id)
                if t.direction == Direction.IN
            )

        outgoing: list[Transfer] = []
        for raw in bundle.outgoing:
            outgoing.extend(
                t for t in self.normalize(raw, account, bundle.network_id)
                if t.direction == Direction.OUT
            )

        logger.debug(
            f"[Normalizer] Network {bundle.network_id}: {len(incoming)} incoming, "
            f"{len(outgoing)} outgoing transfers"
        )
        return NormalizedBundle(
            network_id=bundle.network_id,
            account=bundle.account,
            balances=bundle.balances,
            incoming=incoming,
            outgoing=outgoing,
        )

