# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Foundation - Core enums and base contracts
# PURPOSE: Status enums, tier identifiers and failure reasons
# LAST_REVIEWED: 14 SEP 2026
# EXPORTS: VersionStatus, TierName, FailureReason, ImportAction, MONTH_KEYS
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the irradiance resolution service.

These define the identifiers that cross boundaries:
- SQL (status columns, cache method column)
- HTTP (source tags, failure reasons, import actions)
- Python (internal processing)
"""

from enum import Enum
from typing import Tuple


# ============================================================================
# STATUS ENUMS
# ============================================================================

class VersionStatus(str, Enum):
    """
    Dataset version lifecycle states.

    State transitions:
        PROCESSING -> ACTIVE -> DEPRECATED
                   -> FAILED
    """
    PROCESSING = "processing"    # Import in progress, batches accepted
    ACTIVE = "active"            # Served by Tier 3 (at most one per dataset)
    DEPRECATED = "deprecated"    # Superseded by a newer active version
    FAILED = "failed"            # Aborted or reclaimed, points purged

    def is_terminal(self) -> bool:
        """Check if no import operation can move this version forward."""
        return self in (VersionStatus.DEPRECATED, VersionStatus.FAILED)

    def is_reclaimable(self) -> bool:
        """Failed and orphaned processing versions may be purged."""
        return self in (VersionStatus.PROCESSING, VersionStatus.FAILED)


class TierName(str, Enum):
    """
    Resolution tiers, in fallback order.

    The value doubles as the cache `method` column and the `source` tag
    returned to callers.
    """
    NSRDB = "nsrdb"
    NASA_POWER = "nasa_power_api"
    LOCAL_GRID = "local_grid"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]

    @property
    def method(self) -> str:
        """Resolution method tag recorded with each result."""
        return _TIER_METHODS[self]

    @property
    def is_live(self) -> bool:
        """Live tiers call an external API and cache without a version."""
        return self is not TierName.LOCAL_GRID


_TIER_RANKS = {
    TierName.NSRDB: 1,
    TierName.NASA_POWER: 2,
    TierName.LOCAL_GRID: 3,
}

_TIER_METHODS = {
    TierName.NSRDB: "nsrdb_api",
    TierName.NASA_POWER: "nasa_power_api",
    TierName.LOCAL_GRID: "local_grid_nearest",
}


class FailureReason(str, Enum):
    """Why a tier did not produce a series."""
    OUT_OF_COVERAGE = "out_of_coverage"
    UPSTREAM_ERROR = "upstream_error"
    EMPTY_RESULT = "empty_result"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


class ImportAction(str, Enum):
    """Actions accepted by the import endpoint."""
    INIT = "init"
    BATCH = "batch"
    FINALIZE = "finalize"
    ABORT = "abort"
    DELETE_VERSION = "delete_version"


# ============================================================================
# SERIES KEYS
# ============================================================================

MONTHS: Tuple[int, ...] = tuple(range(1, 13))
MONTH_KEYS: Tuple[str, ...] = tuple(f"m{m:02d}" for m in MONTHS)
DHI_MONTH_KEYS: Tuple[str, ...] = tuple(f"dhi_m{m:02d}" for m in MONTHS)

IRRADIANCE_UNIT = "kwh_m2_day"
