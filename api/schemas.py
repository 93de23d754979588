# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 16 SEP 2026
# ============================================================================
"""
API Schemas

Request and response models for the API. Lookup responses are the
serialized ResolutionResult itself and have no schema here.

Range checks on coordinates and import rows live in the services, so the
error message is the same whether the request came over HTTP or not.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from core.contracts import VersionStatus


# ============================================================================
# LOOKUP
# ============================================================================

class LookupRequest(BaseModel):
    """Body of every lookup endpoint."""
    lat: float = Field(..., description="Latitude in decimal degrees")
    lon: float = Field(..., description="Longitude in decimal degrees")
    version_id: Optional[str] = Field(
        None, max_length=36,
        description="Pin the local grid to this version (must be active)",
    )
    dataset_code: Optional[str] = Field(
        None, max_length=64,
        description="Local grid dataset; defaults to LOCAL_GRID_DATASET",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [{"lat": -15.7939, "lon": -47.8828}]
        }
    }


# ============================================================================
# IMPORT (discriminated by action)
# ============================================================================

class ImportRow(BaseModel):
    """One (coordinate, month) sample."""
    lat: float
    lon: float
    month: int
    ghi: float
    dhi: Optional[float] = None


class InitRequest(BaseModel):
    action: Literal["init"]
    dataset_code: str = Field(..., min_length=1, max_length=64)
    version_tag: str = Field(..., min_length=1, max_length=100)
    source_note: Optional[str] = Field(None, max_length=500)
    file_names: Optional[List[str]] = None


class BatchRequest(BaseModel):
    action: Literal["batch"]
    version_id: str = Field(..., max_length=36)
    rows: List[ImportRow]


class FinalizeRequest(BaseModel):
    action: Literal["finalize"]
    version_id: str = Field(..., max_length=36)
    dataset_id: str = Field(..., max_length=36)
    row_count: int
    checksum: str = Field(..., max_length=128)
    has_dhi: Optional[bool] = None
    has_dni: Optional[bool] = None


class AbortRequest(BaseModel):
    action: Literal["abort"]
    version_id: str = Field(..., max_length=36)
    error: Optional[str] = Field(None, max_length=2000)


class DeleteVersionRequest(BaseModel):
    action: Literal["delete_version"]
    dataset_code: str = Field(..., min_length=1, max_length=64)
    version_tag: str = Field(..., min_length=1, max_length=100)


ImportRequest = Annotated[
    Union[InitRequest, BatchRequest, FinalizeRequest, AbortRequest, DeleteVersionRequest],
    Field(discriminator="action"),
]


class InitResponse(BaseModel):
    version_id: str
    dataset_id: str


class BatchResponse(BaseModel):
    inserted: int


class FinalizeResponse(BaseModel):
    version_id: str
    row_count: int


class AbortResponse(BaseModel):
    success: bool = True


class DeleteVersionResponse(BaseModel):
    deleted: int


# ============================================================================
# DATASET ADMINISTRATION
# ============================================================================

class DatasetCreate(BaseModel):
    """Request to register a dataset."""
    code: str = Field(..., min_length=1, max_length=64, description="e.g. INPE_2017_SUNDATA")
    label: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)


class DatasetResponse(BaseModel):
    dataset_id: str
    code: str
    label: str
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DatasetListResponse(BaseModel):
    datasets: List[DatasetResponse]
    total: int


class VersionResponse(BaseModel):
    version_id: str
    dataset_id: str
    version_tag: str
    status: VersionStatus
    row_count: int
    checksum: Optional[str] = None
    source_note: Optional[str] = None
    imported_by: Optional[str] = None
    last_error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    activated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VersionListResponse(BaseModel):
    dataset_code: str
    versions: List[VersionResponse]
    total: int


class ReclaimRequest(BaseModel):
    older_than_seconds: Optional[int] = Field(
        None, gt=0,
        description="Heartbeat age threshold; defaults to IMPORT_STALE_AFTER_SECONDS",
    )


class ReclaimResponse(BaseModel):
    reclaimed: List[str]


class ErrorResponse(BaseModel):
    """Error response body."""
    error: str
