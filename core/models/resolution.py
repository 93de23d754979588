# ============================================================================
# RESOLUTION RESULT MODELS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain model - Tier output and caller-facing lookup result
# PURPOSE: One output contract for every successful lookup path
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
Resolution Result Models

TierResult is what a resolver hands back to the orchestrator.
ResolutionResult is what the caller sees, whether the series came from a
live call, the cache or the local grid. annual_average is derived from the
series in exactly one place, so it is identical on every path.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import IRRADIANCE_UNIT, TierName
from core.models.series import MonthlySeries


class TierResult(BaseModel):
    """Series plus source-point metadata produced by one tier."""

    tier: TierName
    series: MonthlySeries
    point_lat: float
    point_lon: float
    distance_km: float = Field(default=0.0, ge=0.0)
    version_id: Optional[str] = None
    version_tag: Optional[str] = None
    dataset_code: Optional[str] = None

    model_config = {"frozen": True}


class ResolutionResult(BaseModel):
    """
    Caller-facing lookup result.

    Serialized shape (model_dump):
        source, source_tier, method, cache_hit, series {m01..m12},
        dhi_series {dhi_m01..dhi_m12}, coverage, point_lat, point_lon,
        distance_km, annual_average, unit, has_dhi, version_id,
        version_tag, dataset_code, resolved_at
    """

    tier: TierName = Field(exclude=True)
    cache_hit: bool
    monthly: MonthlySeries = Field(exclude=True)
    point_lat: float
    point_lon: float
    distance_km: float
    version_id: Optional[str] = None
    version_tag: Optional[str] = None
    dataset_code: Optional[str] = None
    resolved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @classmethod
    def from_tier(cls, result: TierResult, cache_hit: bool) -> "ResolutionResult":
        return cls(
            tier=result.tier,
            cache_hit=cache_hit,
            monthly=result.series,
            point_lat=result.point_lat,
            point_lon=result.point_lon,
            distance_km=result.distance_km,
            version_id=result.version_id,
            version_tag=result.version_tag,
            dataset_code=result.dataset_code,
        )

    # ----------------------------------------------------------------
    # Computed fields (serialized)
    # ----------------------------------------------------------------

    @computed_field
    @property
    def source(self) -> str:
        return self.tier.value

    @computed_field
    @property
    def method(self) -> str:
        return self.tier.method

    @computed_field
    @property
    def source_tier(self) -> int:
        return self.tier.rank

    @computed_field
    @property
    def series(self) -> Dict[str, float]:
        return self.monthly.ghi_keyed()

    @computed_field
    @property
    def dhi_series(self) -> Dict[str, float]:
        return self.monthly.dhi_keyed()

    @computed_field
    @property
    def coverage(self) -> List[bool]:
        return list(self.monthly.coverage)

    @computed_field
    @property
    def annual_average(self) -> float:
        return self.monthly.annual_average

    @computed_field
    @property
    def has_dhi(self) -> bool:
        return self.monthly.has_dhi

    @computed_field
    @property
    def unit(self) -> str:
        return IRRADIANCE_UNIT

    # ----------------------------------------------------------------
    # Provenance
    # ----------------------------------------------------------------

    def audit_payload(self) -> Dict[str, Any]:
        """
        Flat provenance snapshot embedded by downstream consumers
        (e.g. a proposal) so the series can be traced after the cache
        or the active version has changed.
        """
        return {
            "irradiance_source": self.source,
            "irradiance_source_tier": self.source_tier,
            "irradiance_method": self.method,
            "irradiance_series": self.series,
            "irradiance_dhi_series": self.dhi_series,
            "irradiance_annual_average": self.annual_average,
            "irradiance_unit": self.unit,
            "irradiance_point_lat": self.point_lat,
            "irradiance_point_lon": self.point_lon,
            "irradiance_distance_km": self.distance_km,
            "irradiance_cache_hit": self.cache_hit,
            "irradiance_version_id": self.version_id,
            "irradiance_version_tag": self.version_tag,
            "irradiance_dataset_code": self.dataset_code,
            "irradiance_resolved_at": self.resolved_at.isoformat(),
        }
