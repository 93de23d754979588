# ============================================================================
# IRRADIANCE POINT MODEL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain model - One month of one grid cell
# PURPOSE: Long-format storage of a version's GHI/DHI grid
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
IrradiancePoint Model

A version's grid is stored long-format: one row per (lat, lon, month).
Rows are bulk-inserted during import, bulk-deleted on purge, never updated.

Maps to: irradiance.irradiance_points
"""

from typing import ClassVar, Dict, List

from pydantic import BaseModel, Field


class IrradiancePoint(BaseModel):
    """
    Monthly irradiance for one grid coordinate of one version.

    PK: point_id (SERIAL)
    FK: version_id → dataset_versions(version_id) CASCADE
    """

    # SQL DDL METADATA
    __sql_table__: ClassVar[str] = "irradiance_points"
    __sql_schema__: ClassVar[str] = "irradiance"
    __sql_primary_key__: ClassVar[List[str]] = ["point_id"]
    __sql_serial_columns__: ClassVar[List[str]] = ["point_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "version_id": "irradiance.dataset_versions(version_id)",
    }
    __sql_indexes__: ClassVar[List] = [
        ("idx_irradiance_points_lookup", ["version_id", "lat", "lon"]),
    ]

    point_id: int = Field(default=0, description="Assigned by the database")
    version_id: str = Field(..., max_length=36)
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)
    month: int = Field(..., ge=1, le=12)
    ghi: float = Field(..., ge=0.0, description="kWh/m²/day")
    dhi: float = Field(default=0.0, ge=0.0, description="kWh/m²/day")

    model_config = {"frozen": True}

    def as_row(self) -> tuple:
        """Column tuple in insert order (version_id, lat, lon, month, ghi, dhi)."""
        return (self.version_id, self.lat, self.lon, self.month, self.ghi, self.dhi)
