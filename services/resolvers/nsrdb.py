# ============================================================================
# TIER 1 - NSRDB RESOLVER
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Live satellite-derived hourly data
# PURPOSE: Monthly GHI/DHI from the NSRDB GOES full-disc CSV download
# CREATED: 15 SEP 2026
# ============================================================================
"""
NSRDB Resolver (Tier 1)

Highest-fidelity source, limited to its coverage box (Brazil by default).
One CSV download per lookup; the body is aggregated locally into monthly
daily means (see services.aggregation).
"""

import logging
from typing import Optional

from core.contracts import TierName
from core.errors import CoverageError, EmptyResultError, UpstreamError
from core.geo import round_coordinate, validate_coordinates
from core.models.resolution import TierResult
from services.aggregation import CsvFormatError, aggregate_nsrdb_csv
from .base import LiveTierResolver

logger = logging.getLogger(__name__)


class NsrdbResolver(LiveTierResolver):
    """Tier 1: NREL NSRDB time series, aggregated to monthly means."""

    tier = TierName.NSRDB

    def covers(self, lat: float, lon: float) -> bool:
        return self.config.nsrdb_coverage.contains(lat, lon)

    async def resolve(
        self,
        lat: float,
        lon: float,
        dataset_code: Optional[str] = None,
        version_id: Optional[str] = None,
    ) -> TierResult:
        lat, lon = validate_coordinates(lat, lon)
        if not self.covers(lat, lon):
            raise CoverageError("Coordinates outside NSRDB coverage area")
        if not self.config.nsrdb_configured:
            raise UpstreamError("NSRDB API key not configured")

        params = {
            "api_key": self.config.nsrdb_api_key,
            "wkt": f"POINT({lon} {lat})",
            "attributes": "ghi,dhi",
            "names": self.config.nsrdb_year,
            "interval": str(self.config.nsrdb_interval_minutes),
            "utc": "false",
            "leap_day": "false",
        }
        if self.config.nsrdb_email:
            params["email"] = self.config.nsrdb_email

        logger.info(f"[NSRDB_LOOKUP] Querying NSRDB for ({lat}, {lon}) year={self.config.nsrdb_year}")
        resp = await self._get(self.config.nsrdb_url, params, accept="text/csv")

        body = resp.text
        if not body or len(body) < self.config.nsrdb_min_body_chars:
            logger.warning(f"[NSRDB_LOOKUP] Empty or short response ({len(body or '')} chars)")
            raise EmptyResultError("NSRDB returned no data for this location")

        try:
            series, stats = aggregate_nsrdb_csv(body, self.config.nsrdb_interval_minutes)
        except CsvFormatError as e:
            raise UpstreamError(f"NSRDB response malformed: {e}")

        if not any(series.coverage):
            raise EmptyResultError("NSRDB CSV contained no usable rows")

        logger.info(
            f"[NSRDB_LOOKUP] Aggregated {stats.rows_read} rows "
            f"({stats.rows_skipped} skipped), annual_avg={series.annual_average:.2f} kWh/m²/day"
        )
        if not series.is_complete:
            missing = [m + 1 for m, covered in enumerate(series.coverage) if not covered]
            logger.warning(f"[NSRDB_LOOKUP] No data for months {missing}, reported as 0")

        return TierResult(
            tier=self.tier,
            series=series,
            point_lat=round_coordinate(lat),
            point_lon=round_coordinate(lon),
            distance_km=0.0,
        )
