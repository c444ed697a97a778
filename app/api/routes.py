"""API route definitions."""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.api.dependencies import (
    get_cache_backend,
    get_registry,
    get_safe_api,
    get_safeflow_service,
)
from app.config import Settings, get_settings
from app.constants import NetworkRegistry
from app.core.cache import CacheBackend
from app.core.exceptions import (
    RateLimitExhaustedError,
    SafeFlowError,
    ServiceError,
    UnsupportedNetworkError,
)
from app.models.api import BundleResponse, DiscoveryResponse, HealthResponse, RecordsResponse
from app.models.flows import FlowGraph, MultiNetworkSummary, TimelineEntry
from app.models.safe import NetworkInfo
from app.providers.safe_api import SafeApiClient
from app.services.wallet import SafeFlowService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["safeflow"])

SafeAddress = Annotated[
    str,
    Path(
        pattern=r"^0x[0-9a-fA-F]{40}$",
        description="Safe address, 0x-prefixed 40 hex characters",
    ),
]


def _raise_http(error: SafeFlowError) -> NoReturn:
    """Translate a domain error into the matching HTTP error."""
    if isinstance(error, UnsupportedNetworkError):
        logger.warning(f"Unsupported network: {error.network_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error.message,
        )
    if isinstance(error, RateLimitExhaustedError):
        logger.error(f"Rate limit exhausted: {error.url}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=error.message,
        )
    if isinstance(error, ServiceError):
        logger.error(f"Transaction service error: {error.message}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=error.message,
        )
    logger.error(f"SafeFlow error: {error.message}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error.message,
    )


@router.get(
    "/networks",
    response_model=list[NetworkInfo],
    summary="List Supported Networks",
    description="Get every network whose Safe Transaction Service is queried.",
)
async def list_networks(
    registry: Annotated[NetworkRegistry, Depends(get_registry)],
) -> list[NetworkInfo]:
    """List all supported networks."""
    return [NetworkInfo.from_config(network) for network in registry]


@router.get(
    "/networks/health",
    summary="Network Health Check",
    description="Check reachability of every network's transaction service.",
)
async def networks_health_check(
    client: Annotated[SafeApiClient, Depends(get_safe_api)],
    registry: Annotated[NetworkRegistry, Depends(get_registry)],
) -> dict[str, list[dict]]:
    """Probe the ``/about/`` endpoint of each network in turn."""
    return {"networks": [await client.health_check(network.id) for network in registry]}


@router.get(
    "/safes/{address}/networks",
    response_model=DiscoveryResponse,
    summary="Discover Safe Networks",
    description="Find every supported network on which the address is a Safe.",
)
async def discover_networks(
    address: SafeAddress,
    service: Annotated[SafeFlowService, Depends(get_safeflow_service)],
    refresh: Annotated[bool, Query(description="Bypass the session cache")] = False,
) -> DiscoveryResponse:
    """Discover the networks of a Safe."""
    try:
        discovered = await service.discover(address, refresh=refresh)
    except SafeFlowError as e:
        _raise_http(e)
    return DiscoveryResponse(address=address, networks=discovered, count=len(discovered))


@router.get(
    "/safes/{address}/networks/{network_id}",
    response_model=BundleResponse,
    summary="Network Bundle",
    description="Account configuration, balances and normalized transfers on one network.",
)
async def get_network_bundle(
    address: SafeAddress,
    network_id: int,
    service: Annotated[SafeFlowService, Depends(get_safeflow_service)],
    refresh: Annotated[bool, Query(description="Bypass the session cache")] = False,
) -> BundleResponse:
    """Fetch and normalize one network of a Safe."""
    try:
        normalized, truncated = await service.get_normalized(
            address, network_id, refresh=refresh
        )
        network = service.registry.get(network_id)
    except SafeFlowError as e:
        _raise_http(e)

    return BundleResponse(
        address=address,
        network=NetworkInfo.from_config(network),
        account=normalized.account,
        balances=normalized.balances,
        incoming=normalized.incoming,
        outgoing=normalized.outgoing,
        truncated=truncated,
    )


@router.get(
    "/safes/{address}/networks/{network_id}/multisig-transactions",
    response_model=RecordsResponse,
    summary="Multisig Transactions",
    description="Raw multisig transactions, executed or pending, newest first (capped).",
)
async def get_multisig_transactions(
    address: SafeAddress,
    network_id: int,
    client: Annotated[SafeApiClient, Depends(get_safe_api)],
) -> RecordsResponse:
    """Read the multisig-transactions endpoint of one network."""
    try:
        records = await client.get_all_multisig_transactions(address, network_id)
    except SafeFlowError as e:
        _raise_http(e)
    return RecordsResponse(
        address=address, network_id=network_id, records=records, count=len(records)
    )


@router.get(
    "/safes/{address}/networks/{network_id}/incoming-transfers",
    response_model=RecordsResponse,
    summary="Incoming Transfers",
    description="Raw incoming native and token transfers (capped).",
)
async def get_incoming_transfers(
    address: SafeAddress,
    network_id: int,
    client: Annotated[SafeApiClient, Depends(get_safe_api)],
) -> RecordsResponse:
    """Read the incoming-transfers endpoint of one network."""
    try:
        records = await client.get_all_incoming_transfers(address, network_id)
    except SafeFlowError as e:
        _raise_http(e)
    return RecordsResponse(
        address=address, network_id=network_id, records=records, count=len(records)
    )


@router.get(
    "/safes/{address}/timeline",
    response_model=list[TimelineEntry],
    summary="Transfer Timeline",
    description="Chronological transfers across every discovered network, or one of them.",
)
async def get_timeline(
    address: SafeAddress,
    service: Annotated[SafeFlowService, Depends(get_safeflow_service)],
    network_id: Annotated[
        int | None, Query(description="Restrict to one network")
    ] = None,
) -> list[TimelineEntry]:
    """Build the transfer timeline of a Safe."""
    try:
        return await service.timeline(address, network_id)
    except SafeFlowError as e:
        _raise_http(e)


@router.get(
    "/safes/{address}/networks/{network_id}/flow",
    response_model=FlowGraph,
    summary="Flow Graph",
    description="Aggregated value flows between the Safe and its counterparties on one network.",
)
async def get_flow_graph(
    address: SafeAddress,
    network_id: int,
    service: Annotated[SafeFlowService, Depends(get_safeflow_service)],
) -> FlowGraph:
    """Build the flow graph of one network."""
    try:
        return await service.flow_graph(address, network_id)
    except SafeFlowError as e:
        _raise_http(e)


@router.get(
    "/safes/{address}/summary",
    response_model=MultiNetworkSummary,
    summary="Multi-Network Summary",
    description="Per-network and combined statistics, top flows and transfer tables.",
)
async def get_summary(
    address: SafeAddress,
    service: Annotated[SafeFlowService, Depends(get_safeflow_service)],
) -> MultiNetworkSummary:
    """Summarize a Safe across all discovered networks."""
    try:
        return await service.summary(address)
    except SafeFlowError as e:
        _raise_http(e)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check API and cache health status.",
)
async def health_check(
    cache: Annotated[CacheBackend, Depends(get_cache_backend)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Check API health and cache availability."""
    cache_healthy = await cache.ping()

    overall_status = "healthy" if cache_healthy else "degraded"
    cache_status = "connected" if cache_healthy else "disconnected"

    return HealthResponse(
        status=overall_status,
        version=settings.app_version,
        cache_status=cache_status,
    )
