# ============================================================================
# MONTHLY SERIES MODEL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Value object - Twelve monthly GHI/DHI values
# PURPOSE: Common series shape returned by every tier and stored in the cache
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
MonthlySeries

Twelve GHI values, twelve DHI values (kWh/m²/day) and a per-month coverage
flag. A month a tier had no data for is carried as 0.0 with coverage False,
so consumers can tell "zero irradiance" from "no observation".
"""

from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from core.contracts import MONTHS, MONTH_KEYS, DHI_MONTH_KEYS


def round4(value: float) -> float:
    return round(float(value), 4)


class MonthlySeries(BaseModel):
    """Jan..Dec irradiance series."""

    ghi: List[float] = Field(..., min_length=12, max_length=12)
    dhi: List[float] = Field(default_factory=lambda: [0.0] * 12, min_length=12, max_length=12)
    coverage: List[bool] = Field(default_factory=lambda: [True] * 12, min_length=12, max_length=12)

    model_config = {"frozen": True}

    @field_validator("ghi", "dhi")
    @classmethod
    def _round_values(cls, values: List[float]) -> List[float]:
        return [round4(v) for v in values]

    @model_validator(mode="after")
    def _non_negative(self) -> "MonthlySeries":
        if any(v < 0 for v in self.ghi) or any(v < 0 for v in self.dhi):
            raise ValueError("irradiance values must be non-negative")
        return self

    # ----------------------------------------------------------------
    # Construction helpers
    # ----------------------------------------------------------------

    @classmethod
    def from_monthly(
        cls,
        ghi_by_month: Mapping[int, Optional[float]],
        dhi_by_month: Optional[Mapping[int, Optional[float]]] = None,
    ) -> "MonthlySeries":
        """
        Build from {month: value} maps; missing or None GHI months become 0
        with coverage False. DHI gaps are zero-filled without touching
        coverage.
        """
        dhi_by_month = dhi_by_month or {}
        ghi, dhi, coverage = [], [], []
        for month in MONTHS:
            value = ghi_by_month.get(month)
            coverage.append(value is not None)
            ghi.append(value if value is not None else 0.0)
            diffuse = dhi_by_month.get(month)
            dhi.append(diffuse if diffuse is not None else 0.0)
        return cls(ghi=ghi, dhi=dhi, coverage=coverage)

    # ----------------------------------------------------------------
    # Derived values
    # ----------------------------------------------------------------

    @property
    def annual_average(self) -> float:
        """Arithmetic mean of the 12 GHI values, 4 decimals."""
        return round4(sum(self.ghi) / 12.0)

    @property
    def has_dhi(self) -> bool:
        return any(v > 0 for v in self.dhi)

    @property
    def is_complete(self) -> bool:
        return all(self.coverage)

    def ghi_keyed(self) -> Dict[str, float]:
        """{"m01": ..., "m12": ...}"""
        return dict(zip(MONTH_KEYS, self.ghi))

    def dhi_keyed(self) -> Dict[str, float]:
        """{"dhi_m01": ..., "dhi_m12": ...}"""
        return dict(zip(DHI_MONTH_KEYS, self.dhi))
