# ============================================================================
# IMPORT ROUTES
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Dataset import HTTP endpoint
# PURPOSE: Single action-dispatched endpoint for the import pipeline
# CREATED: 16 SEP 2026
# ============================================================================
"""
Import Routes

Endpoint:
- POST /api/v1/irradiance/import

The body's `action` picks the operation:

    init            {dataset_code, version_tag, source_note?, file_names?}
                    → {version_id, dataset_id}
    batch           {version_id, rows: [{lat, lon, month, ghi, dhi}]}
                    → {inserted}
    finalize        {version_id, dataset_id, row_count, checksum,
                     has_dhi?, has_dni?}
                    → {version_id, row_count}
    abort           {version_id, error?} → {success: true}
    delete_version  {dataset_code, version_tag} → {deleted}

An unknown action fails body validation (400).
"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException

from api.auth import require_caller
from api.schemas import (
    AbortRequest,
    AbortResponse,
    BatchRequest,
    BatchResponse,
    DeleteVersionRequest,
    DeleteVersionResponse,
    FinalizeRequest,
    FinalizeResponse,
    ImportRequest,
    InitRequest,
    InitResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/irradiance", tags=["import"])


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

_import_service = None


def set_import_services(import_service):
    """Called by main.py at startup to inject the import service."""
    global _import_service
    _import_service = import_service


def _get_import_service():
    """Get the import service, raising 503 if not initialized."""
    if _import_service is None:
        raise HTTPException(503, "Import service not initialized")
    return _import_service


# ============================================================================
# DISPATCH
# ============================================================================

@router.post("/import")
async def import_action(
    request: ImportRequest = Body(...),
    caller: str = Depends(require_caller),
):
    """Run one step of the import pipeline."""
    svc = _get_import_service()

    if isinstance(request, InitRequest):
        version_id, dataset_id = await svc.init_version(
            request.dataset_code,
            request.version_tag,
            source_note=request.source_note,
            file_names=request.file_names,
            imported_by=caller,
        )
        return InitResponse(version_id=version_id, dataset_id=dataset_id)

    if isinstance(request, BatchRequest):
        inserted = await svc.append_batch(
            request.version_id,
            [row.model_dump() for row in request.rows],
        )
        return BatchResponse(inserted=inserted)

    if isinstance(request, FinalizeRequest):
        version_id, row_count = await svc.finalize_version(
            request.version_id,
            request.dataset_id,
            request.row_count,
            request.checksum,
            has_dhi=request.has_dhi,
            has_dni=request.has_dni,
        )
        return FinalizeResponse(version_id=version_id, row_count=row_count)

    if isinstance(request, AbortRequest):
        await svc.abort_version(request.version_id, reason=request.error)
        return AbortResponse()

    if isinstance(request, DeleteVersionRequest):
        deleted = await svc.delete_version(request.dataset_code, request.version_tag)
        logger.info(f"Version {request.dataset_code}/{request.version_tag} deleted by {caller}")
        return DeleteVersionResponse(deleted=deleted)

    raise HTTPException(400, f"Unsupported action: {request.action}")
