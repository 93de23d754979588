# ============================================================================
# DATASET ROUTES
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Dataset administration HTTP endpoints
# PURPOSE: Register datasets, inspect versions, reclaim orphaned imports
# CREATED: 16 SEP 2026
# ============================================================================
"""
Dataset Routes

Endpoints:
- GET  /api/v1/irradiance/datasets                  - List datasets
- POST /api/v1/irradiance/datasets                  - Register a dataset
- GET  /api/v1/irradiance/datasets/{code}/versions  - Versions, newest first
- POST /api/v1/irradiance/versions/reclaim          - Fail stale processing versions
"""

import logging

from fastapi import APIRouter, Depends

from api.auth import require_caller
from api.import_routes import _get_import_service
from api.schemas import (
    DatasetCreate,
    DatasetListResponse,
    DatasetResponse,
    ReclaimRequest,
    ReclaimResponse,
    VersionListResponse,
    VersionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/irradiance", tags=["datasets"], dependencies=[Depends(require_caller)])


@router.get("/datasets", response_model=DatasetListResponse)
async def list_datasets():
    """List registered datasets."""
    svc = _get_import_service()
    datasets = await svc.list_datasets()
    return DatasetListResponse(
        datasets=[DatasetResponse.model_validate(d) for d in datasets],
        total=len(datasets),
    )


@router.post("/datasets", response_model=DatasetResponse, status_code=201)
async def create_dataset(request: DatasetCreate):
    """Register a dataset. 409 when the code is taken."""
    svc = _get_import_service()
    dataset = await svc.create_dataset(request.code, request.label, request.description)
    return DatasetResponse.model_validate(dataset)


@router.get("/datasets/{code}/versions", response_model=VersionListResponse)
async def list_versions(code: str):
    """Versions of one dataset with their lifecycle state."""
    svc = _get_import_service()
    versions = await svc.list_versions(code)
    return VersionListResponse(
        dataset_code=code.strip().upper(),
        versions=[VersionResponse.model_validate(v) for v in versions],
        total=len(versions),
    )


@router.post("/versions/reclaim", response_model=ReclaimResponse)
async def reclaim_versions(request: ReclaimRequest):
    """Mark processing versions with no recent batch as failed."""
    svc = _get_import_service()
    reclaimed = await svc.reclaim_stale_versions(request.older_than_seconds)
    return ReclaimResponse(reclaimed=reclaimed)
