# ============================================================================
# COORDINATE CACHE REPOSITORY
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain - Cache lookup, upsert and invalidation
# PURPOSE: Database access for the coordinate_cache table
# CREATED: 14 SEP 2026
# ============================================================================
"""
CoordinateCache Repository

Pure keyed store: (lat_key, lon_key, method, version_id) → series.
A NULL version_id is its own key, matched with IS NULL; the unique
expression index over COALESCE(version_id, '') makes the upsert target.
"""

import logging
from typing import Any, Dict, Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.contracts import TierName, VersionStatus
from core.models.cache_entry import CacheEntry, CacheKey
from core.models.series import MonthlySeries
from .database import TABLE_COORDINATE_CACHE, TABLE_DATASET_VERSIONS, use_connection

logger = logging.getLogger(__name__)


class CoordinateCacheRepository:
    """Repository for CacheEntry rows."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Exact-key lookup."""
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                    SELECT * FROM {}
                    WHERE lat_key = %s AND lon_key = %s AND method = %s
                      AND version_id IS NOT DISTINCT FROM %s
                """).format(TABLE_COORDINATE_CACHE),
                (key.lat_key, key.lon_key, key.method.value, key.version_id),
            )
            row = await result.fetchone()
            return self._row_to_model(row) if row else None

    async def put(self, entry: CacheEntry) -> bool:
        """
        Insert or replace the entry for its key.

        An entry pinned to a version is written only while that version is
        active. The version row is held FOR SHARE for the write, so a
        concurrent promotion either waits for this insert (and then purges
        it) or commits first (and the insert is skipped).

        Returns:
            False when a pinned entry was skipped
        """
        async with self.pool.connection() as conn:
            async with conn.transaction():
                if entry.version_id is not None:
                    result = await conn.execute(
                        sql.SQL("""
                            SELECT 1 FROM {} WHERE version_id = %s AND status = %s
                            FOR SHARE
                        """).format(TABLE_DATASET_VERSIONS),
                        (entry.version_id, VersionStatus.ACTIVE.value),
                    )
                    if await result.fetchone() is None:
                        logger.info(f"Skipped cache write for inactive version {entry.version_id}")
                        return False

                await conn.execute(
                    sql.SQL("""
                        INSERT INTO {} (
                            lat_key, lon_key, method, version_id, version_tag, dataset_code, series,
                            point_lat, point_lon, distance_km, created_at
                        ) VALUES (
                            %(lat_key)s, %(lon_key)s, %(method)s, %(version_id)s,
                            %(version_tag)s, %(dataset_code)s, %(series)s,
                            %(point_lat)s, %(point_lon)s, %(distance_km)s, %(created_at)s
                        )
                        ON CONFLICT (lat_key, lon_key, method, (COALESCE(version_id, '')))
                        DO UPDATE SET
                            version_tag = EXCLUDED.version_tag,
                            dataset_code = EXCLUDED.dataset_code,
                            series = EXCLUDED.series,
                            point_lat = EXCLUDED.point_lat,
                            point_lon = EXCLUDED.point_lon,
                            distance_km = EXCLUDED.distance_km,
                            created_at = EXCLUDED.created_at
                    """).format(TABLE_COORDINATE_CACHE),
                    {
                        "lat_key": entry.lat_key,
                        "lon_key": entry.lon_key,
                        "method": entry.method.value,
                        "version_id": entry.version_id,
                        "version_tag": entry.version_tag,
                        "dataset_code": entry.dataset_code,
                        "series": Json(entry.series.model_dump()),
                        "point_lat": entry.point_lat,
                        "point_lon": entry.point_lon,
                        "distance_km": entry.distance_km,
                        "created_at": entry.created_at,
                    },
                )
        return True

    async def delete_for_version(self, version_id: str,
                                 conn: Optional[AsyncConnection] = None) -> int:
        """Drop every entry produced by one version."""
        async with use_connection(self.pool, conn) as conn:
            result = await conn.execute(
                sql.SQL("DELETE FROM {} WHERE version_id = %s").format(TABLE_COORDINATE_CACHE),
                (version_id,),
            )
            return result.rowcount

    async def delete_for_inactive_versions(self, dataset_id: str,
                                           conn: Optional[AsyncConnection] = None) -> int:
        """
        Drop entries tied to any non-active version of a dataset.

        Run inside the promotion transaction; afterwards only entries of
        the newly active version can exist for this dataset.
        """
        async with use_connection(self.pool, conn) as conn:
            result = await conn.execute(
                sql.SQL("""
                    DELETE FROM {cache} c
                    USING {versions} v
                    WHERE c.version_id = v.version_id
                      AND v.dataset_id = %s
                      AND v.status <> %s
                """).format(
                    cache=TABLE_COORDINATE_CACHE,
                    versions=TABLE_DATASET_VERSIONS,
                ),
                (dataset_id, VersionStatus.ACTIVE.value),
            )
            deleted = result.rowcount
            if deleted:
                logger.info(f"Invalidated {deleted} cache entries for dataset {dataset_id}")
            return deleted

    def _row_to_model(self, row: Dict[str, Any]) -> CacheEntry:
        """Convert a database row to a CacheEntry instance."""
        return CacheEntry(
            cache_id=row.get("cache_id") or 0,
            lat_key=row["lat_key"],
            lon_key=row["lon_key"],
            method=TierName(row["method"]),
            version_id=row.get("version_id"),
            version_tag=row.get("version_tag"),
            dataset_code=row.get("dataset_code"),
            series=MonthlySeries.model_validate(row["series"]),
            point_lat=row["point_lat"],
            point_lon=row["point_lon"],
            distance_km=row.get("distance_km") or 0.0,
            created_at=row["created_at"],
        )
