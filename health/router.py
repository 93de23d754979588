# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Infrastructure - FastAPI health check endpoints
# PURPOSE: Liveness, readiness and detailed health endpoints
# CREATED: 16 SEP 2026
# ============================================================================
"""
Health Check Router

Endpoints (mounted at the root, no auth):
    GET /livez               process answers; no dependencies touched
    GET /readyz              required checks pass (postgres, schema, ...)
    GET /health              every check, with a per-category summary
    GET /health/{check_name} one check

Response codes: 200 healthy, 206 degraded, 503 unhealthy.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from __version__ import BUILD_DATE, __version__
from health.core import HealthStatus
from health.executor import HealthCheckExecutor
from health.registry import get_registry

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


@health_router.get("/livez")
async def liveness():
    """Liveness check. No external checks."""
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


@health_router.get("/readyz")
async def readiness():
    """
    Readiness check: runs the checks marked required_for_ready.

    503 until startup has wired the services, then 503 listing only the
    failing checks.
    """
    registry = get_registry()
    if not registry.is_initialized:
        return JSONResponse(status_code=503, content={"status": "starting"})
    if len(registry) == 0:
        return {"status": "ready", "message": "No checks registered"}

    result = await HealthCheckExecutor(registry, overall_timeout=10.0).execute_required()

    if result.status == HealthStatus.UNHEALTHY:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "checks": {
                    name: check.to_dict()
                    for name, check in result.checks.items()
                    if check.status == HealthStatus.UNHEALTHY
                },
                "total_duration_ms": round(result.total_duration_ms, 2),
            },
        )

    return {
        "status": "ready",
        "checks_passed": len(result.checks),
        "total_duration_ms": round(result.total_duration_ms, 2),
    }


@health_router.get("/health")
async def full_health_check():
    """All registered checks with a summary by category."""
    registry = get_registry()
    if len(registry) == 0:
        return {"status": "healthy", "message": "No checks registered", "checks": {}}

    result = await HealthCheckExecutor(registry).execute_all()

    body = result.to_dict()
    body["version"] = __version__
    body["build_date"] = BUILD_DATE

    summary = {}
    for name, check_result in result.checks.items():
        check = registry.get(name)
        if check is None:
            continue
        counts = summary.setdefault(
            check.category.value, {"healthy": 0, "degraded": 0, "unhealthy": 0}
        )
        counts[check_result.status.value] += 1
    body["summary"] = summary

    return JSONResponse(status_code=result.status.http_code, content=body)


@health_router.get("/health/{check_name}")
async def single_health_check(check_name: str):
    """Run one check by name."""
    result = await HealthCheckExecutor().execute_single(check_name)
    if result is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"Health check not found: {check_name}"},
        )
    return JSONResponse(status_code=result.status.http_code, content=result.to_dict())


__all__ = [
    "health_router",
]
