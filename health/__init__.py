# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Infrastructure - Health check plugin system
# PURPOSE: Health endpoints and component checks
# CREATED: 16 SEP 2026
# ============================================================================
"""
Health Check Module

Plugin-based health checks:
- /livez: process alive
- /readyz: required checks pass
- /health: every check, by category

Usage:
    from health import health_router, get_registry
    import health.checks  # registers the plugins
    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckResult,
    HealthCheckPlugin,
    HealthCheckCategory,
)
from health.registry import (
    HealthCheckRegistry,
    register_check,
    get_registry,
)
from health.executor import HealthCheckExecutor
from health.router import health_router

__all__ = [
    "HealthStatus",
    "HealthCheckResult",
    "HealthCheckPlugin",
    "HealthCheckCategory",
    "HealthCheckRegistry",
    "register_check",
    "get_registry",
    "HealthCheckExecutor",
    "health_router",
]
