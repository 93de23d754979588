# ============================================================================
# DATASET VERSION REPOSITORY
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain - DatasetVersion CRUD and lifecycle queries
# PURPOSE: Database access for the dataset_versions table
# CREATED: 14 SEP 2026
# ============================================================================
"""
DatasetVersion Repository

CRUD operations for dataset versions. Every method accepts an optional
connection so the import pipeline can combine them in one transaction;
`lock="update"` / `lock="key_share"` adds FOR UPDATE / FOR KEY SHARE to reads.
All SQL uses psycopg sql.SQL composition for injection safety.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.models.dataset_version import DatasetVersion
from core.contracts import VersionStatus
from .database import TABLE_DATASET_VERSIONS, use_connection

logger = logging.getLogger(__name__)

_LOCK_CLAUSES = {
    None: sql.SQL(""),
    "update": sql.SQL(" FOR UPDATE"),
    "key_share": sql.SQL(" FOR KEY SHARE"),
}


class DatasetVersionRepository:
    """Repository for DatasetVersion entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create(self, version: DatasetVersion,
                     conn: Optional[AsyncConnection] = None) -> DatasetVersion:
        """
        Insert a new version.

        Raises psycopg UniqueViolation when (dataset_id, version_tag)
        already exists.
        """
        async with use_connection(self.pool, conn) as conn:
            await conn.execute(
                sql.SQL("""
                    INSERT INTO {} (
                        version_id, dataset_id, version_tag, status,
                        row_count, checksum, source_note, imported_by,
                        last_error, metadata,
                        created_at, updated_at, activated_at
                    ) VALUES (
                        %(version_id)s, %(dataset_id)s, %(version_tag)s, %(status)s,
                        %(row_count)s, %(checksum)s, %(source_note)s, %(imported_by)s,
                        %(last_error)s, %(metadata)s,
                        %(created_at)s, %(updated_at)s, %(activated_at)s
                    )
                """).format(TABLE_DATASET_VERSIONS),
                {
                    "version_id": version.version_id,
                    "dataset_id": version.dataset_id,
                    "version_tag": version.version_tag,
                    "status": version.status.value,
                    "row_count": version.row_count,
                    "checksum": version.checksum,
                    "source_note": version.source_note,
                    "imported_by": version.imported_by,
                    "last_error": version.last_error,
                    "metadata": Json(version.metadata),
                    "created_at": version.created_at,
                    "updated_at": version.updated_at,
                    "activated_at": version.activated_at,
                },
            )
            logger.info(
                f"Created version {version.version_tag} ({version.version_id}) "
                f"for dataset {version.dataset_id}"
            )
            return version

    async def get(self, version_id: str,
                  conn: Optional[AsyncConnection] = None,
                  lock: Optional[str] = None) -> Optional[DatasetVersion]:
        """Get a version by ID, optionally row-locked."""
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE version_id = %s{}").format(
                    TABLE_DATASET_VERSIONS, _LOCK_CLAUSES[lock]
                ),
                (version_id,),
            )
            row = await result.fetchone()
            return self._row_to_model(row) if row else None

    async def get_by_tag(self, dataset_id: str, version_tag: str,
                         conn: Optional[AsyncConnection] = None,
                         lock: Optional[str] = None) -> Optional[DatasetVersion]:
        """Get the version of a dataset carrying a given tag."""
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL(
                    "SELECT * FROM {} WHERE dataset_id = %s AND version_tag = %s{}"
                ).format(TABLE_DATASET_VERSIONS, _LOCK_CLAUSES[lock]),
                (dataset_id, version_tag),
            )
            row = await result.fetchone()
            return self._row_to_model(row) if row else None

    async def get_active(self, dataset_id: str,
                         conn: Optional[AsyncConnection] = None) -> Optional[DatasetVersion]:
        """Get the active version of a dataset (at most one exists)."""
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL(
                    "SELECT * FROM {} WHERE dataset_id = %s AND status = %s"
                ).format(TABLE_DATASET_VERSIONS),
                (dataset_id, VersionStatus.ACTIVE.value),
            )
            row = await result.fetchone()
            return self._row_to_model(row) if row else None

    async def list_for_dataset(self, dataset_id: str, limit: int = 100) -> List[DatasetVersion]:
        """List versions of a dataset, newest first."""
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL(
                    "SELECT * FROM {} WHERE dataset_id = %s "
                    "ORDER BY created_at DESC LIMIT %s"
                ).format(TABLE_DATASET_VERSIONS),
                (dataset_id, limit),
            )
            rows = await result.fetchall()
            return [self._row_to_model(row) for row in rows]

    async def update(self, version: DatasetVersion,
                     conn: Optional[AsyncConnection] = None) -> bool:
        """
        Persist lifecycle fields of a version.

        Callers hold the row lock (FOR UPDATE) for the duration of the
        enclosing transaction, so no optimistic version check is needed.

        Returns:
            True if the row exists and was updated.
        """
        version.updated_at = datetime.now(timezone.utc)

        async with use_connection(self.pool, conn) as conn:
            result = await conn.execute(
                sql.SQL("""
                    UPDATE {} SET
                        status = %(status)s,
                        row_count = %(row_count)s,
                        checksum = %(checksum)s,
                        last_error = %(last_error)s,
                        metadata = %(metadata)s,
                        activated_at = %(activated_at)s,
                        updated_at = %(updated_at)s
                    WHERE version_id = %(version_id)s
                """).format(TABLE_DATASET_VERSIONS),
                {
                    "version_id": version.version_id,
                    "status": version.status.value,
                    "row_count": version.row_count,
                    "checksum": version.checksum,
                    "last_error": version.last_error,
                    "metadata": Json(version.metadata),
                    "activated_at": version.activated_at,
                    "updated_at": version.updated_at,
                },
            )
            if result.rowcount == 0:
                logger.warning(f"Version {version.version_id} vanished during update")
                return False
            return True

    async def deprecate_active(self, dataset_id: str, keep_version_id: str,
                               conn: Optional[AsyncConnection] = None) -> List[str]:
        """
        Demote every active version of a dataset except `keep_version_id`.

        Must run before the kept version is marked active, since the
        partial unique index allows one active row per dataset.

        Returns:
            IDs of versions that were deprecated
        """
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                    UPDATE {} SET status = %s, updated_at = NOW()
                    WHERE dataset_id = %s AND status = %s AND version_id <> %s
                    RETURNING version_id
                """).format(TABLE_DATASET_VERSIONS),
                (
                    VersionStatus.DEPRECATED.value,
                    dataset_id,
                    VersionStatus.ACTIVE.value,
                    keep_version_id,
                ),
            )
            rows = await result.fetchall()
            return [row["version_id"] for row in rows]

    async def touch(self, version_id: str,
                    conn: Optional[AsyncConnection] = None) -> None:
        """Refresh updated_at (import heartbeat)."""
        async with use_connection(self.pool, conn) as conn:
            await conn.execute(
                sql.SQL("UPDATE {} SET updated_at = NOW() WHERE version_id = %s").format(
                    TABLE_DATASET_VERSIONS
                ),
                (version_id,),
            )

    async def delete(self, version_id: str,
                     conn: Optional[AsyncConnection] = None) -> bool:
        """Delete a version row. Points and cache rows cascade."""
        async with use_connection(self.pool, conn) as conn:
            result = await conn.execute(
                sql.SQL("DELETE FROM {} WHERE version_id = %s").format(TABLE_DATASET_VERSIONS),
                (version_id,),
            )
            return result.rowcount > 0

    async def lock_stale_processing(self, older_than_seconds: int, limit: int = 50,
                                    conn: Optional[AsyncConnection] = None) -> List[DatasetVersion]:
        """
        Lock processing versions whose heartbeat is older than the threshold.

        Uses FOR UPDATE SKIP LOCKED so a version with an in-flight batch or
        finalize is never picked up.
        """
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                    SELECT * FROM {}
                    WHERE status = %s
                      AND updated_at < NOW() - make_interval(secs => %s)
                    ORDER BY updated_at
                    LIMIT %s
                    FOR UPDATE SKIP LOCKED
                """).format(TABLE_DATASET_VERSIONS),
                (VersionStatus.PROCESSING.value, older_than_seconds, limit),
            )
            rows = await result.fetchall()
            return [self._row_to_model(row) for row in rows]

    def _row_to_model(self, row: Dict[str, Any]) -> DatasetVersion:
        """Convert a database row to a DatasetVersion instance."""
        return DatasetVersion(
            version_id=row["version_id"],
            dataset_id=row["dataset_id"],
            version_tag=row["version_tag"],
            status=VersionStatus(row["status"]),
            row_count=row.get("row_count") or 0,
            checksum=row.get("checksum"),
            source_note=row.get("source_note"),
            imported_by=row.get("imported_by"),
            last_error=row.get("last_error"),
            metadata=row.get("metadata") or {},
            created_at=row["created_at"],
            updated_at=row.get("updated_at") or row["created_at"],
            activated_at=row.get("activated_at"),
        )
