# ============================================================================
# APPLICATION HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Infrastructure - Application state checks
# PURPOSE: Resolution service wiring and local grid availability
# CREATED: 16 SEP 2026
# ============================================================================
"""
Application Health Checks

Priority 40:
- ResolutionServiceCheck: tier chain wired; the default local grid dataset
  has an active version (degraded otherwise, since Tier 3 cannot answer)
"""

import logging

from core.contracts import TierName
from core.errors import NotFoundError
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


# Set by main.py at startup
_resolution_service = None


def set_resolution_service(service):
    """Set resolution service reference for health checks."""
    global _resolution_service
    _resolution_service = service


@register_check(category="application", timeout_seconds=5.0)
class ResolutionServiceCheck(HealthCheckPlugin):
    """Resolution service initialized with its tier chain."""

    name = "resolution_service"

    async def check(self) -> HealthCheckResult:
        if _resolution_service is None:
            return HealthCheckResult.unhealthy(
                message="Resolution service not initialized",
                hint="Resolution service reference not set",
            )

        tiers = [t.value for t in _resolution_service.tiers]
        details = {"tiers": tiers, "cache_enabled": _resolution_service.cache_config.enabled}

        if TierName.LOCAL_GRID.value not in tiers:
            return HealthCheckResult.healthy(message=f"{len(tiers)} tiers configured", **details)

        local = _resolution_service.resolver_for(TierName.LOCAL_GRID)
        try:
            code, version = await local.active_version()
        except NotFoundError as e:
            return HealthCheckResult.degraded(
                message=f"Local grid unavailable: {e.message}",
                hint="Import and finalize a dataset version",
                **details,
            )

        return HealthCheckResult.healthy(
            message=f"{len(tiers)} tiers configured",
            local_grid_dataset=code,
            local_grid_version=version.version_tag,
            local_grid_rows=version.row_count,
            **details,
        )


__all__ = [
    "ResolutionServiceCheck",
    "set_resolution_service",
]
