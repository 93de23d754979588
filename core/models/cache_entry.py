# ============================================================================
# CACHE ENTRY MODEL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain model - Coordinate cache row
# PURPOSE: Memoize a tier's monthly series for a rounded coordinate
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
CacheEntry Model

Key: (lat_key, lon_key, method, version_id). lat_key/lon_key are the fixed
point keys from core.geo.round_key. A NULL version_id is one distinct key
(unique expression index over COALESCE(version_id, '')), which is what live
tiers use. Rows carrying a version_id are purged when that version stops
being active.

Maps to: irradiance.coordinate_cache
"""

from datetime import datetime, timezone
from typing import ClassVar, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field

from core.contracts import TierName
from core.models.series import MonthlySeries


class CacheKey(NamedTuple):
    """Lookup key for the coordinate cache."""
    lat_key: int
    lon_key: int
    method: TierName
    version_id: Optional[str] = None


class CacheEntry(BaseModel):
    """
    A previously resolved series for one rounded coordinate.

    PK: cache_id (SERIAL)
    FK: version_id → dataset_versions(version_id) CASCADE
    """

    # SQL DDL METADATA
    __sql_table__: ClassVar[str] = "coordinate_cache"
    __sql_schema__: ClassVar[str] = "irradiance"
    __sql_primary_key__: ClassVar[List[str]] = ["cache_id"]
    __sql_serial_columns__: ClassVar[List[str]] = ["cache_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "version_id": "irradiance.dataset_versions(version_id)",
    }
    __sql_indexes__: ClassVar[List] = [
        {
            "name": "uq_coordinate_cache_key",
            "columns": ["lat_key", "lon_key", "method", "COALESCE(version_id, '')"],
            "unique": True,
        },
        ("idx_coordinate_cache_version", ["version_id"], "version_id IS NOT NULL"),
    ]

    cache_id: int = Field(default=0, description="Assigned by the database")
    lat_key: int = Field(..., description="round(lat, 4) × 10^4")
    lon_key: int = Field(..., description="round(lon, 4) × 10^4")
    method: TierName = Field(..., description="Tier that produced the series")
    version_id: Optional[str] = Field(default=None, max_length=36)
    version_tag: Optional[str] = Field(default=None, max_length=100)
    dataset_code: Optional[str] = Field(default=None, max_length=64)
    series: MonthlySeries = Field(..., description="GHI, DHI and per-month coverage")
    point_lat: float = Field(...)
    point_lon: float = Field(...)
    distance_km: float = Field(default=0.0, ge=0.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}

    @property
    def key(self) -> CacheKey:
        return CacheKey(self.lat_key, self.lon_key, self.method, self.version_id)
