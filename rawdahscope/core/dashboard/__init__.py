from rawdahscope.core.dashboard.dashboard_coordinator import (
    DashboardCoordinator,
    Domain,
    DomainState,
    DomainStatus,
)

__all__ = ["DashboardCoordinator", "Domain", "DomainState", "DomainStatus"]
