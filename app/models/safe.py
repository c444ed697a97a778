"""Safe account and network bundle models."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field

from app.constants import Direction, NetworkConfig

# Decimals stay exact in Python and go out as JSON numbers
Amount = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class NetworkInfo(BaseModel):
    """Serializable view of a registry entry."""

    id: int
    name: str
    slug: str
    tx_service_url: str
    explorer_url: str
    symbol: str
    color: str

    @classmethod
    def from_config(cls, config: NetworkConfig) -> "NetworkInfo":
        return cls(**config._asdict())


class AccountState(BaseModel):
    """On-chain configuration of a Safe on one network."""

    address: str
    nonce: int = 0
    threshold: int = 0
    owners: list[str] = Field(default_factory=list)
    modules: list[str] = Field(default_factory=list)
    fallback_handler: str | None = None
    guard: str | None = None
    version: str | None = None
    network_id: int


class Balance(BaseModel):
    """Native or token balance held by a Safe."""

    token_address: str | None = None
    name: str | None = None
    symbol: str
    decimals: int
    logo_uri: str | None = None
    balance: str
    balance_formatted: str
    fiat_balance: str = "0"
    fiat_conversion: str = "0"


class DiscoveredAccount(BaseModel):
    """A network on which the account exists."""

    network_id: int
    network: NetworkInfo
    account: AccountState


class NetworkBundle(BaseModel):
    """Raw per-network fetch result; transactions are left opaque."""

    network_id: int
    account: AccountState | None = None
    balances: list[Balance] = Field(default_factory=list)
    outgoing: list[dict[str, Any]] = Field(default_factory=list)
    incoming: list[dict[str, Any]] = Field(default_factory=list)
    truncated: bool = Field(
        default=False, description="History stopped early at the record cap or on error"
    )


class Transfer(BaseModel):
    """Canonical directional movement of value into or out of a Safe."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime | None = None
    direction: Direction
    counterparty: str | None = None
    symbol: str
    token_name: str | None = None
    token_address: str | None = None
    decimals: int
    amount: Amount
    usd_estimate: Amount | None = None
    network_id: int
    tx_hash: str | None = None

    @computed_field
    @property
    def has_usd_estimate(self) -> bool:
        return self.usd_estimate is not None

    @property
    def usd_value(self) -> Decimal:
        """USD estimate when known, else the raw token amount for display."""
        return self.usd_estimate if self.usd_estimate is not None else self.amount


class NormalizedBundle(BaseModel):
    """Per-network bundle after normalization, input to the aggregators."""

    network_id: int
    account: AccountState | None = None
    balances: list[Balance] = Field(default_factory=list)
    incoming: list[Transfer] = Field(default_factory=list)
    outgoing: list[Transfer] = Field(default_factory=list)
