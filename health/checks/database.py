# ============================================================================
# DATABASE HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Infrastructure - PostgreSQL and schema checks
# PURPOSE: Database connectivity and irradiance schema availability
# CREATED: 16 SEP 2026
# ============================================================================
"""
Database Health Checks

Priority 30:
- PostgresCheck: SELECT 1 through the shared pool, plus pool stats
- IrradianceSchemaCheck: the four irradiance tables exist
"""

import logging

from psycopg.rows import dict_row

from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check
from repositories import database

logger = logging.getLogger(__name__)

REQUIRED_TABLES = (
    "datasets",
    "dataset_versions",
    "irradiance_points",
    "coordinate_cache",
)


@register_check(category="database", timeout_seconds=5.0)
class PostgresCheck(HealthCheckPlugin):
    """
    PostgreSQL connectivity through the application pool.

    Degraded when requests are waiting for a connection.
    """

    name = "postgres"

    async def check(self) -> HealthCheckResult:
        pool = database._pool
        if pool is None:
            return HealthCheckResult.unhealthy(message="Connection pool not initialized")

        async with pool.connection() as conn:
            result = await conn.execute("SELECT 1")
            row = await result.fetchone()
        if not row or row[0] != 1:
            return HealthCheckResult.unhealthy(message="PostgreSQL returned an unexpected result")

        stats = pool.get_stats()
        details = {
            "pool_size": stats.get("pool_size", 0),
            "pool_available": stats.get("pool_available", 0),
            "pool_min": stats.get("pool_min", 0),
            "pool_max": stats.get("pool_max", 0),
            "requests_waiting": stats.get("requests_waiting", 0),
            "requests_errors": stats.get("requests_errors", 0),
            "connections_lost": stats.get("connections_lost", 0),
        }

        if details["requests_waiting"] > 0:
            return HealthCheckResult.degraded(
                message=f"Pool saturated: {details['requests_waiting']} requests waiting",
                **details,
            )
        return HealthCheckResult.healthy(message="PostgreSQL connected", **details)


@register_check(category="database", timeout_seconds=5.0)
class IrradianceSchemaCheck(HealthCheckPlugin):
    """Tables created by scripts/deploy_schema.py are present."""

    name = "irradiance_schema"

    async def check(self) -> HealthCheckResult:
        pool = database._pool
        if pool is None:
            return HealthCheckResult.unhealthy(message="Connection pool not initialized")

        async with pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                """
                SELECT table_name FROM information_schema.tables
                WHERE table_schema = %s AND table_name = ANY(%s)
                """,
                (database.SCHEMA, list(REQUIRED_TABLES)),
            )
            existing = {row["table_name"] for row in await result.fetchall()}

        missing = [t for t in REQUIRED_TABLES if t not in existing]
        if missing:
            return HealthCheckResult.unhealthy(
                message=f"Missing tables: {', '.join(missing)}",
                schema=database.SCHEMA,
                missing_tables=missing,
                hint="Run scripts/deploy_schema.py",
            )
        return HealthCheckResult.healthy(
            message="Irradiance schema available",
            schema=database.SCHEMA,
            tables=sorted(existing),
        )


__all__ = [
    "PostgresCheck",
    "IrradianceSchemaCheck",
]
