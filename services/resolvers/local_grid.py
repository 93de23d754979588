# ============================================================================
# TIER 3 - LOCAL GRID RESOLVER
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Nearest point of the active dataset version
# PURPOSE: Last-resort lookup against the imported reference grid
# CREATED: 15 SEP 2026
# ============================================================================
"""
Local Grid Resolver (Tier 3)

Snaps the query to the nearest stored coordinate of the dataset's active
version. Candidates are pulled from a ±search_radius_deg box (split at the
antimeridian) and ranked in Python by haversine distance, ties broken by
(lat, lon) so the choice is deterministic.

This is the only tier with a non-zero distance_km.
"""

import logging
from typing import List, Optional, Tuple

from psycopg_pool import AsyncConnectionPool

from core.config import LocalGridDefaults
from core.contracts import MONTHS, TierName
from core.errors import EmptyResultError, NotFoundError
from core.geo import haversine_km, search_window, validate_coordinates
from core.models.dataset_version import DatasetVersion
from core.models.resolution import TierResult
from core.models.series import MonthlySeries
from repositories.dataset_repo import DatasetRepository
from repositories.point_repo import IrradiancePointRepository
from repositories.version_repo import DatasetVersionRepository
from .base import TierResolver

logger = logging.getLogger(__name__)


def nearest_point(
    lat: float, lon: float, candidates: List[Tuple[float, float]]
) -> Tuple[Tuple[float, float], float]:
    """
    Nearest candidate by haversine distance.

    Returns ((lat, lon), distance_km). Ties resolve to the smaller lat,
    then the smaller lon.
    """
    ranked = sorted(
        (haversine_km(lat, lon, c_lat, c_lon), c_lat, c_lon)
        for c_lat, c_lon in candidates
    )
    distance, best_lat, best_lon = ranked[0]
    return (best_lat, best_lon), distance


class LocalGridResolver(TierResolver):
    """Tier 3: nearest neighbour over the active version's grid."""

    tier = TierName.LOCAL_GRID

    def __init__(self, pool: AsyncConnectionPool,
                 config: Optional[LocalGridDefaults] = None):
        self.pool = pool
        self.config = config or LocalGridDefaults.from_env()
        self.dataset_repo = DatasetRepository(pool)
        self.version_repo = DatasetVersionRepository(pool)
        self.point_repo = IrradiancePointRepository(pool)

    async def active_version(self, dataset_code: Optional[str] = None) -> Tuple[str, DatasetVersion]:
        """
        (dataset_code, active version) for a dataset.

        Raises:
            NotFoundError: unknown dataset or no active version
        """
        code = (dataset_code or self.config.default_dataset_code).strip().upper()
        dataset = await self.dataset_repo.get_by_code(code)
        if dataset is None:
            raise NotFoundError(f"Dataset '{code}' not found")
        version = await self.version_repo.get_active(dataset.dataset_id)
        if version is None:
            raise NotFoundError(f"Dataset '{code}' has no active version")
        return dataset.code, version

    async def resolve(
        self,
        lat: float,
        lon: float,
        dataset_code: Optional[str] = None,
        version_id: Optional[str] = None,
    ) -> TierResult:
        lat, lon = validate_coordinates(lat, lon)
        code, version = await self.active_version(dataset_code)

        if version_id is not None and version_id != version.version_id:
            raise NotFoundError(
                f"Version {version_id} is not the active version of dataset '{code}'"
            )

        lat_range, lon_ranges = search_window(lat, lon, self.config.search_radius_deg)
        candidates = await self.point_repo.find_candidates(
            version.version_id, lat_range, lon_ranges
        )
        if not candidates:
            logger.info(
                f"[LOCAL_GRID_LOOKUP] No points within {self.config.search_radius_deg}° "
                f"of ({lat}, {lon}) in {code}/{version.version_tag}"
            )
            raise EmptyResultError(
                f"No grid point within {self.config.search_radius_deg} degrees of the coordinate"
            )

        (point_lat, point_lon), distance = nearest_point(lat, lon, candidates)
        rows = await self.point_repo.get_series_rows(version.version_id, point_lat, point_lon)

        ghi_by_month = {row["month"]: row["ghi"] for row in rows if row["month"] in MONTHS}
        dhi_by_month = {row["month"]: row["dhi"] for row in rows if row["month"] in MONTHS}
        series = MonthlySeries.from_monthly(ghi_by_month, dhi_by_month)

        logger.info(
            f"[LOCAL_GRID_LOOKUP] Nearest point ({point_lat}, {point_lon}) "
            f"at {distance:.3f} km from {len(candidates)} candidates"
        )
        return TierResult(
            tier=self.tier,
            series=series,
            point_lat=point_lat,
            point_lon=point_lon,
            distance_km=round(distance, 3),
            version_id=version.version_id,
            version_tag=version.version_tag,
            dataset_code=code,
        )
