"""
Dashboard Routes

Read/refresh surface over the DashboardCoordinator held on ``app.state``.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from rawdahscope.core.dashboard.dashboard_coordinator import (
    DashboardCoordinator,
    Domain,
)

dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


# ============================================================================
# SCHEMAS
# ============================================================================


class DomainStatusResponse(BaseModel):
    """State of one dashboard domain."""

    state: str
    last_timestamp: float | None = None
    last_payload: Any = None
    last_error: str | None = None
    freshness: dict[str, Any]


class DashboardStatusResponse(BaseModel):
    """Every domain plus the time of the last full refresh."""

    last_updated: float | None = None
    domains: dict[str, DomainStatusResponse]


# ============================================================================
# DEPENDENCIES
# ============================================================================


def get_coordinator(request: Request) -> DashboardCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Dashboard not ready")
    return coordinator


def parse_domain(domain: str) -> Domain:
    try:
        return Domain(domain)
    except ValueError:
        raise HTTPException(
            status_code=404, detail=f"Unknown domain '{domain}'"
        ) from None


def _status_response(
    coordinator: DashboardCoordinator, snapshot: dict[str, dict]
) -> DashboardStatusResponse:
    return DashboardStatusResponse(
        last_updated=coordinator.last_updated,
        domains={
            name: DomainStatusResponse(**status)
            for name, status in snapshot.items()
        },
    )


# ============================================================================
# ENDPOINTS
# ============================================================================


@dashboard_router.get("/status", response_model=DashboardStatusResponse)
async def get_dashboard_status(
    coordinator: DashboardCoordinator = Depends(get_coordinator),
):
    """Status, payload and freshness of every domain."""
    return _status_response(coordinator, coordinator.snapshot())


@dashboard_router.get(
    "/status/{domain}", response_model=DomainStatusResponse
)
async def get_domain_status(
    domain: Domain = Depends(parse_domain),
    coordinator: DashboardCoordinator = Depends(get_coordinator),
):
    return DomainStatusResponse(**coordinator.status(domain).to_dict())


@dashboard_router.post("/refresh", response_model=DashboardStatusResponse)
async def refresh_dashboard(
    force: bool = Query(False, description="Clear the cache first"),
    coordinator: DashboardCoordinator = Depends(get_coordinator),
):
    """Refresh every domain; upstream failures show up as domain states."""
    snapshot = await coordinator.fetch_all(force_refresh=force)
    return _status_response(coordinator, snapshot)


@dashboard_router.post(
    "/refresh/{domain}", response_model=DomainStatusResponse
)
async def refresh_domain(
    domain: Domain = Depends(parse_domain),
    coordinator: DashboardCoordinator = Depends(get_coordinator),
):
    """Per-widget retry."""
    status = await coordinator.refresh_one(domain)
    return DomainStatusResponse(**status.to_dict())


@dashboard_router.get("/cache/stats")
async def get_cache_stats(
    coordinator: DashboardCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    return coordinator.cache_stats()
