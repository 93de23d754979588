# ============================================================================
# STARTUP HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Infrastructure - Startup health checks
# PURPOSE: Process resources and configuration
# CREATED: 16 SEP 2026
# ============================================================================
"""
Startup Health Checks

Basic checks that run first (priority 10):
- ProcessCheck: always healthy if it runs; reports memory and CPU
- ConfigCheck: database settings present, optional tier settings noted
"""

import os
import platform
import sys
import logging
from typing import List

import psutil

from core.config import get_defaults
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


@register_check(category="startup", timeout_seconds=2.0)
class ProcessCheck(HealthCheckPlugin):
    """Process is alive; resource usage for dashboards."""

    name = "process"

    async def check(self) -> HealthCheckResult:
        process = psutil.Process(os.getpid())
        memory = process.memory_info()
        return HealthCheckResult.healthy(
            message="Process running",
            python_version=sys.version.split()[0],
            platform=platform.platform(),
            pid=process.pid,
            rss_mb=round(memory.rss / (1024 * 1024), 1),
            cpu_percent=process.cpu_percent(interval=None),
            system_memory_percent=psutil.virtual_memory().percent,
        )


@register_check(category="startup", timeout_seconds=1.0)
class ConfigCheck(HealthCheckPlugin):
    """
    Configuration health check.

    Unhealthy without database settings. Degraded when NSRDB has no API
    key (Tier 1 always falls through) or when API_TOKENS is unset (any
    bearer token is accepted).
    """

    name = "config"

    async def check(self) -> HealthCheckResult:
        missing: List[str] = []
        if not os.environ.get("DATABASE_URL"):
            missing = [v for v in ("POSTGRES_HOST", "POSTGRES_DB") if not os.environ.get(v)]

        defaults = get_defaults()
        details = {
            "schema": defaults.database.schema,
            "nsrdb_configured": defaults.tiers.nsrdb_configured,
            "nsrdb_coverage": list(defaults.tiers.nsrdb_coverage.as_tuple()),
            "local_grid_dataset": defaults.local_grid.default_dataset_code,
            "cache_enabled": defaults.cache.enabled,
            "api_tokens_configured": bool(os.environ.get("API_TOKENS")),
        }

        if missing:
            return HealthCheckResult.unhealthy(
                message=f"Missing required config: {', '.join(missing)}",
                missing=missing,
                hint="Set DATABASE_URL or POSTGRES_HOST and POSTGRES_DB",
                **details,
            )

        warnings = []
        if not details["nsrdb_configured"]:
            warnings.append("NSRDB_API_KEY not set, Tier 1 disabled")
        if not details["api_tokens_configured"]:
            warnings.append("API_TOKENS not set, bearer tokens not verified")
        if warnings:
            return HealthCheckResult.degraded(message="; ".join(warnings), **details)

        return HealthCheckResult.healthy(message="All required config present", **details)


__all__ = [
    "ProcessCheck",
    "ConfigCheck",
]
