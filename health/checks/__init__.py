# ============================================================================
# HEALTH CHECK PLUGINS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Infrastructure - Health check implementations
# PURPOSE: Concrete checks for the irradiance service
# CREATED: 16 SEP 2026
# ============================================================================
"""
Health Check Plugins

Startup (priority 10):
- process: process alive, resource usage
- config: database settings present, tier settings reported

Database (priority 30):
- postgres: pool connectivity and stats
- irradiance_schema: irradiance tables deployed

Application (priority 40):
- resolution_service: tier chain wired, local grid has an active version

Import this module to register all checks:
    import health.checks
"""

from health.checks.startup import ProcessCheck, ConfigCheck
from health.checks.database import PostgresCheck, IrradianceSchemaCheck
from health.checks.application import ResolutionServiceCheck

__all__ = [
    "ProcessCheck",
    "ConfigCheck",
    "PostgresCheck",
    "IrradianceSchemaCheck",
    "ResolutionServiceCheck",
]
