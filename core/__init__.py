# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors, models, and schema utilities
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================

from core.contracts import VersionStatus, TierName, FailureReason, ImportAction
from core.errors import (
    IrradianceError,
    ValidationError,
    CoverageError,
    UpstreamError,
    EmptyResultError,
    NotFoundError,
    ConflictError,
    AuthenticationError,
    IntegrityError,
    ResolutionExhaustedError,
)
from core.models import (
    MonthlySeries,
    Dataset,
    DatasetVersion,
    IrradiancePoint,
    CacheEntry,
    CacheKey,
    TierResult,
    ResolutionResult,
)
from core.schema import PydanticToSQL

__all__ = [
    # Enums
    "VersionStatus",
    "TierName",
    "FailureReason",
    "ImportAction",
    # Errors
    "IrradianceError",
    "ValidationError",
    "CoverageError",
    "UpstreamError",
    "EmptyResultError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "IntegrityError",
    "ResolutionExhaustedError",
    # Models
    "MonthlySeries",
    "Dataset",
    "DatasetVersion",
    "IrradiancePoint",
    "CacheEntry",
    "CacheKey",
    "TierResult",
    "ResolutionResult",
    # Schema
    "PydanticToSQL",
]
