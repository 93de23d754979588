# ============================================================================
# IRRADIANCE POINT REPOSITORY
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain - Bulk point storage and nearest-point queries
# PURPOSE: Database access for the irradiance_points table
# CREATED: 14 SEP 2026
# ============================================================================
"""
IrradiancePoint Repository

Bulk insert and purge for the import pipeline, plus the two reads the
local grid tier needs: candidate coordinates around a query point and the
monthly rows of one coordinate.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.models.irradiance_point import IrradiancePoint
from .database import TABLE_IRRADIANCE_POINTS, use_connection

logger = logging.getLogger(__name__)


class IrradiancePointRepository:
    """Repository for IrradiancePoint rows."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def insert_many(self, points: Sequence[IrradiancePoint],
                          conn: Optional[AsyncConnection] = None) -> int:
        """Bulk insert points with executemany. Returns rows inserted."""
        if not points:
            return 0
        async with use_connection(self.pool, conn) as conn:
            async with conn.cursor() as cur:
                await cur.executemany(
                    sql.SQL("""
                        INSERT INTO {} (version_id, lat, lon, month, ghi, dhi)
                        VALUES (%s, %s, %s, %s, %s, %s)
                    """).format(TABLE_IRRADIANCE_POINTS),
                    [p.as_row() for p in points],
                )
            return len(points)

    async def count(self, version_id: str,
                    conn: Optional[AsyncConnection] = None) -> int:
        """Number of point rows stored for a version."""
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT COUNT(*) AS count FROM {} WHERE version_id = %s").format(
                    TABLE_IRRADIANCE_POINTS
                ),
                (version_id,),
            )
            row = await result.fetchone()
            return row["count"]

    async def delete_for_version(self, version_id: str,
                                 conn: Optional[AsyncConnection] = None) -> int:
        """Purge every point of a version. Returns rows deleted."""
        async with use_connection(self.pool, conn) as conn:
            result = await conn.execute(
                sql.SQL("DELETE FROM {} WHERE version_id = %s").format(TABLE_IRRADIANCE_POINTS),
                (version_id,),
            )
            deleted = result.rowcount
            if deleted:
                logger.info(f"Purged {deleted} points of version {version_id}")
            return deleted

    async def find_candidates(
        self,
        version_id: str,
        lat_range: Tuple[float, float],
        lon_ranges: List[Tuple[float, float]],
    ) -> List[Tuple[float, float]]:
        """
        Distinct coordinates of a version inside a degree box.

        lon_ranges holds one range, or two when the box crosses the
        antimeridian.
        """
        lon_clauses = sql.SQL(" OR ").join(
            sql.SQL("(lon BETWEEN %s AND %s)") for _ in lon_ranges
        )
        params: List[Any] = [version_id, lat_range[0], lat_range[1]]
        for lo, hi in lon_ranges:
            params.extend([lo, hi])

        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                    SELECT DISTINCT lat, lon FROM {}
                    WHERE version_id = %s
                      AND lat BETWEEN %s AND %s
                      AND ({})
                """).format(TABLE_IRRADIANCE_POINTS, lon_clauses),
                params,
            )
            rows = await result.fetchall()
            return [(row["lat"], row["lon"]) for row in rows]

    async def get_series_rows(self, version_id: str, lat: float,
                              lon: float) -> List[Dict[str, Any]]:
        """Monthly rows (month, ghi, dhi) stored for one coordinate."""
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                    SELECT month, ghi, dhi FROM {}
                    WHERE version_id = %s AND lat = %s AND lon = %s
                    ORDER BY month
                """).format(TABLE_IRRADIANCE_POINTS),
                (version_id, lat, lon),
            )
            return await result.fetchall()
