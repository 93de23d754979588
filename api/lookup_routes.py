# ============================================================================
# LOOKUP ROUTES
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Irradiance lookup HTTP endpoints
# PURPOSE: Orchestrated and single-tier lookups
# CREATED: 16 SEP 2026
# ============================================================================
"""
Lookup Routes

Endpoints:
- POST /api/v1/irradiance/lookup             - Fallback NSRDB → NASA POWER → local grid
- POST /api/v1/irradiance/nsrdb-lookup       - Tier 1 only
- POST /api/v1/irradiance/nasa-power-lookup  - Tier 2 only
- POST /api/v1/irradiance/local-lookup       - Tier 3 only

All take {lat, lon, version_id?, dataset_code?} and return a serialized
ResolutionResult plus an `audit` block (ResolutionResult.audit_payload) that
callers store alongside anything computed from the series. Service errors are IrradianceError subclasses and are
mapped to status codes by the application exception handler.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from api.auth import require_caller
from api.schemas import LookupRequest
from core.contracts import TierName

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/irradiance", tags=["irradiance"], dependencies=[Depends(require_caller)])


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

_resolution_service = None


def set_lookup_services(resolution_service):
    """Called by main.py at startup to inject the resolution service."""
    global _resolution_service
    _resolution_service = resolution_service


def _get_resolution_service():
    """Get the resolution service, raising 503 if not initialized."""
    if _resolution_service is None:
        raise HTTPException(503, "Resolution service not initialized")
    return _resolution_service


# ============================================================================
# ENDPOINTS
# ============================================================================

def _serialize(result) -> Dict[str, Any]:
    body = result.model_dump(mode="json")
    body["audit"] = result.audit_payload()
    return body


@router.post("/lookup")
async def lookup(
    request: LookupRequest,
    x_correlation_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """
    Resolve monthly irradiance with tier fallback.

    502 with one attempt per tier when every tier fails.
    """
    svc = _get_resolution_service()
    result = await svc.resolve(
        request.lat,
        request.lon,
        dataset_code=request.dataset_code,
        version_id=request.version_id,
        correlation_id=x_correlation_id,
    )
    return _serialize(result)


async def _single_tier(tier: TierName, request: LookupRequest,
                       correlation_id: Optional[str]) -> Dict[str, Any]:
    svc = _get_resolution_service()
    result = await svc.resolve_tier(
        tier,
        request.lat,
        request.lon,
        dataset_code=request.dataset_code,
        version_id=request.version_id,
        correlation_id=correlation_id,
    )
    return _serialize(result)


@router.post("/nsrdb-lookup")
async def nsrdb_lookup(
    request: LookupRequest,
    x_correlation_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """Tier 1 only. 400 out_of_coverage outside the NSRDB box."""
    return await _single_tier(TierName.NSRDB, request, x_correlation_id)


@router.post("/nasa-power-lookup")
async def nasa_power_lookup(
    request: LookupRequest,
    x_correlation_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """Tier 2 only."""
    return await _single_tier(TierName.NASA_POWER, request, x_correlation_id)


@router.post("/local-lookup")
async def local_lookup(
    request: LookupRequest,
    x_correlation_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """Tier 3 only. 404 when the dataset has no active version."""
    return await _single_tier(TierName.LOCAL_GRID, request, x_correlation_id)
