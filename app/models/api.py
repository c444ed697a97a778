"""Request and response models for the HTTP API."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.models.safe import AccountState, Balance, DiscoveredAccount, NetworkInfo, Transfer


class DiscoveryResponse(BaseModel):
    """Networks on which an address is a Safe."""

    address: str
    networks: list[DiscoveredAccount] = Field(default_factory=list)
    count: int = 0


class BundleResponse(BaseModel):
    """One network's account state, balances and normalized transfers."""

    address: str
    network: NetworkInfo
    account: AccountState | None = None
    balances: list[Balance] = Field(default_factory=list)
    incoming: list[Transfer] = Field(default_factory=list)
    outgoing: list[Transfer] = Field(default_factory=list)
    truncated: bool = False


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    cache_status: Literal["connected", "disconnected"]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RecordsResponse(BaseModel):
    """Raw transaction service records from one paginated endpoint."""

    address: str
    network_id: int
    records: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0
