# ============================================================================
# TIER 2 - NASA POWER RESOLVER
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Live global climatology
# PURPOSE: Monthly GHI/DHI climatology from the NASA POWER point API
# CREATED: 15 SEP 2026
# ============================================================================
"""
NASA POWER Resolver (Tier 2)

Global coverage, lower resolution. The climatology endpoint already returns
monthly means in kWh/m²/day:

    {"properties": {"parameter": {
        "ALLSKY_SFC_SW_DWN":  {"JAN": 5.8, ..., "DEC": 6.1, "ANN": 5.6},
        "ALLSKY_SFC_SW_DIFF": {"JAN": 2.1, ...}
    }}}

Some deployments of the API key months numerically ("1".."12", "13" for the
annual value); both shapes are accepted. Values at or below -900 are fill
values and count as missing.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from core.contracts import MONTHS, TierName
from core.errors import EmptyResultError, UpstreamError
from core.geo import round_coordinate, validate_coordinates
from core.models.resolution import TierResult
from core.models.series import MonthlySeries
from .base import LiveTierResolver

logger = logging.getLogger(__name__)

GHI_PARAMETER = "ALLSKY_SFC_SW_DWN"
DHI_PARAMETER = "ALLSKY_SFC_SW_DIFF"
FILL_VALUE_THRESHOLD = -900.0

MONTH_ABBREVIATIONS = (
    "JAN", "FEB", "MAR", "APR", "MAY", "JUN",
    "JUL", "AUG", "SEP", "OCT", "NOV", "DEC",
)


def _clean(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number <= FILL_VALUE_THRESHOLD:
        return None
    return max(0.0, number)


def extract_monthly(values: Mapping[str, Any]) -> Dict[int, Optional[float]]:
    """Month → value from either month-name or numeric keys."""
    monthly: Dict[int, Optional[float]] = {}
    for month in MONTHS:
        raw = values.get(MONTH_ABBREVIATIONS[month - 1])
        if raw is None:
            raw = values.get(str(month))
        monthly[month] = _clean(raw)
    return monthly


def extract_annual(values: Mapping[str, Any]) -> Optional[float]:
    raw = values.get("ANN")
    if raw is None:
        raw = values.get("13")
    return _clean(raw)


class NasaPowerResolver(LiveTierResolver):
    """Tier 2: NASA POWER long-term climatology, global."""

    tier = TierName.NASA_POWER

    async def resolve(
        self,
        lat: float,
        lon: float,
        dataset_code: Optional[str] = None,
        version_id: Optional[str] = None,
    ) -> TierResult:
        lat, lon = validate_coordinates(lat, lon)

        params = {
            "parameters": f"{GHI_PARAMETER},{DHI_PARAMETER}",
            "community": self.config.nasa_power_community,
            "longitude": lon,
            "latitude": lat,
            "format": "JSON",
        }
        logger.info(f"[NASA_POWER_LOOKUP] Querying climatology for ({lat}, {lon})")
        resp = await self._get(self.config.nasa_power_url, params)

        try:
            data = resp.json()
        except ValueError:
            raise UpstreamError("NASA POWER returned a non-JSON body")

        properties = data.get("properties") if isinstance(data, dict) else None
        parameters = properties.get("parameter") if isinstance(properties, dict) else None
        if not isinstance(parameters, dict):
            raise UpstreamError("NASA POWER response malformed: missing properties.parameter")

        ghi_values = parameters.get(GHI_PARAMETER)
        if not ghi_values:
            raise EmptyResultError("NASA POWER returned no GHI data")
        dhi_values = parameters.get(DHI_PARAMETER) or {}
        for name, block in ((GHI_PARAMETER, ghi_values), (DHI_PARAMETER, dhi_values)):
            if not isinstance(block, dict):
                raise UpstreamError(f"NASA POWER response malformed: {name} is not a month mapping")

        ghi_monthly = extract_monthly(ghi_values)
        if all(v is None for v in ghi_monthly.values()):
            raise EmptyResultError("NASA POWER GHI contains only fill values")

        series = MonthlySeries.from_monthly(ghi_monthly, extract_monthly(dhi_values))
        self._check_annual(series, extract_annual(ghi_values))

        logger.info(
            f"[NASA_POWER_LOOKUP] SUCCESS annual_avg={series.annual_average:.2f} kWh/m²/day"
        )
        return TierResult(
            tier=self.tier,
            series=series,
            point_lat=round_coordinate(lat),
            point_lon=round_coordinate(lon),
            distance_km=0.0,
        )

    def _check_annual(self, series: MonthlySeries, annual: Optional[float]) -> None:
        """Compare the 12-month mean with the API's own annual value."""
        if annual is None or not series.is_complete:
            return
        deviation = abs(series.annual_average - annual)
        if deviation > self.config.nasa_power_annual_tolerance:
            logger.warning(
                f"[NASA_POWER_LOOKUP] Monthly mean {series.annual_average} differs from "
                f"reported annual {annual} by {deviation:.4f}"
            )
