# ============================================================================
# IMPORT SERVICE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Versioned dataset import pipeline
# PURPOSE: Init → Batch* → Finalize | Abort, plus version administration
# CREATED: 15 SEP 2026
# ============================================================================
"""
Import Service

Owns the lifecycle of DatasetVersion rows and their IrradiancePoint rows:

    init_version      create a PROCESSING version (or reclaim a FAILED tag)
    append_batch      bulk insert points while PROCESSING
    finalize_version  verify the row count, promote to ACTIVE, demote the
                      previous ACTIVE version, invalidate its cache rows
    abort_version     PROCESSING → FAILED, points purged
    delete_version    remove a version with its points and cache rows
    reclaim_stale_versions
                      fail PROCESSING versions whose heartbeat went quiet

Every state change runs in one transaction on one pooled connection with the
version row locked, so a lookup only ever sees the dataset before or after a
promotion. Nothing here is retried; the import client decides.
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import pydantic
from psycopg.errors import UniqueViolation
from psycopg_pool import AsyncConnectionPool

from core.config import ImportDefaults
from core.contracts import VersionStatus
from core.errors import ConflictError, IntegrityError, NotFoundError, ValidationError
from core.geo import validate_coordinates
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models.dataset import Dataset
from core.models.dataset_version import DatasetVersion
from core.models.irradiance_point import IrradiancePoint
from repositories.cache_repo import CoordinateCacheRepository
from repositories.dataset_repo import DatasetRepository
from repositories.point_repo import IrradiancePointRepository
from repositories.version_repo import DatasetVersionRepository

logger = get_logger(__name__, ComponentType.IMPORTER)


def _first_error(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"{field}: {err.get('msg')}" if field else str(err.get("msg"))


def build_point(version_id: str, index: int, row: Mapping[str, Any]) -> IrradiancePoint:
    """
    Validate one import row into an IrradiancePoint.

    A missing or null dhi is stored as 0.

    Raises:
        ValidationError: naming the row index
    """
    missing = [name for name in ("lat", "lon", "month", "ghi") if row.get(name) is None]
    if missing:
        raise ValidationError(f"Row {index}: missing {', '.join(missing)}")

    try:
        lat, lon = validate_coordinates(row["lat"], row["lon"])
    except ValidationError as e:
        raise ValidationError(f"Row {index}: {e.message}")

    dhi = row.get("dhi")
    try:
        return IrradiancePoint(
            version_id=version_id,
            lat=lat,
            lon=lon,
            month=row["month"],
            ghi=row["ghi"],
            dhi=0.0 if dhi is None else dhi,
        )
    except pydantic.ValidationError as e:
        raise ValidationError(f"Row {index}: {_first_error(e)}")


class ImportService:
    """
    Versioned dataset import.

    Constructor injection of AsyncConnectionPool, repos instantiated in
    __init__.
    """

    def __init__(self, pool: AsyncConnectionPool, config: Optional[ImportDefaults] = None):
        self.pool = pool
        self.config = config or ImportDefaults.from_env()
        self.dataset_repo = DatasetRepository(pool)
        self.version_repo = DatasetVersionRepository(pool)
        self.point_repo = IrradiancePointRepository(pool)
        self.cache_repo = CoordinateCacheRepository(pool)

    # =========================================================================
    # DATASETS
    # =========================================================================

    async def create_dataset(
        self,
        code: str,
        label: str,
        description: Optional[str] = None,
    ) -> Dataset:
        """
        Register a dataset.

        Raises:
            ValidationError: bad code or label
            ConflictError: code already registered
        """
        try:
            dataset = Dataset(code=code, label=label, description=description)
        except pydantic.ValidationError as e:
            raise ValidationError(_first_error(e))

        try:
            return await self.dataset_repo.create(dataset)
        except UniqueViolation:
            raise ConflictError(
                f"Dataset '{dataset.code}' already exists",
                kind=ConflictError.DATASET_EXISTS,
            )

    async def list_datasets(self) -> List[Dataset]:
        return await self.dataset_repo.list_all()

    async def list_versions(self, dataset_code: str) -> List[DatasetVersion]:
        """Versions of a dataset, newest first."""
        dataset = await self._get_dataset(dataset_code)
        return await self.version_repo.list_for_dataset(dataset.dataset_id)

    async def _get_dataset(self, dataset_code: str) -> Dataset:
        code = (dataset_code or "").strip().upper()
        if not code:
            raise ValidationError("dataset_code is required")
        dataset = await self.dataset_repo.get_by_code(code)
        if dataset is None:
            raise NotFoundError(f"Dataset '{code}' not found")
        return dataset

    # =========================================================================
    # INIT
    # =========================================================================

    async def init_version(
        self,
        dataset_code: str,
        version_tag: str,
        source_note: Optional[str] = None,
        file_names: Optional[Iterable[str]] = None,
        imported_by: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Open a new PROCESSING version.

        Returns:
            (version_id, dataset_id)

        Raises:
            NotFoundError: unknown dataset
            ConflictError: tag is active/deprecated (VersionExists) or
                still processing (VersionInProgress)
        """
        tag = (version_tag or "").strip()
        if not tag:
            raise ValidationError("version_tag is required")

        dataset = await self._get_dataset(dataset_code)

        metadata = {"file_names": list(file_names)} if file_names else {}
        try:
            version = DatasetVersion(
                dataset_id=dataset.dataset_id,
                version_tag=tag,
                source_note=source_note,
                imported_by=imported_by,
                metadata=metadata,
            )
        except pydantic.ValidationError as e:
            raise ValidationError(_first_error(e))

        with log_context(operation="import.init", dataset_code=dataset.code):
            try:
                async with self.pool.connection() as conn, conn.transaction():
                    existing = await self.version_repo.get_by_tag(
                        dataset.dataset_id, tag, conn=conn, lock="update"
                    )
                    if existing is not None:
                        await self._reclaim_tag(existing, conn)
                    await self.version_repo.create(version, conn=conn)
            except UniqueViolation:
                # Another init for the same tag committed first
                raise ConflictError(
                    f"Version '{tag}' of {dataset.code} is already being imported",
                    kind=ConflictError.VERSION_IN_PROGRESS,
                )

            logger.info(f"[IMPORT] Init {dataset.code}/{tag} → {version.version_id}")
            log_checkpoint("version_initialized", {
                "version_id": version.version_id,
                "version_tag": tag,
            }, logger=logger)

        return version.version_id, dataset.dataset_id

    async def _reclaim_tag(self, existing: DatasetVersion, conn) -> None:
        """Clear a FAILED version out of the way, or refuse the tag."""
        if existing.status in (VersionStatus.ACTIVE, VersionStatus.DEPRECATED):
            raise ConflictError(
                f"Version '{existing.version_tag}' already exists "
                f"({existing.status.value}); delete it before reimporting",
                kind=ConflictError.VERSION_EXISTS,
            )
        if existing.status == VersionStatus.PROCESSING:
            raise ConflictError(
                f"Version '{existing.version_tag}' is already being imported",
                kind=ConflictError.VERSION_IN_PROGRESS,
            )

        purged = await self._purge(existing.version_id, conn)
        await self.version_repo.delete(existing.version_id, conn=conn)
        logger.info(
            f"[IMPORT] Replaced failed version {existing.version_id} "
            f"({purged} leftover points purged)"
        )

    async def _purge(self, version_id: str, conn) -> int:
        """Drop points and cache rows of a version. Returns points deleted."""
        deleted = await self.point_repo.delete_for_version(version_id, conn=conn)
        await self.cache_repo.delete_for_version(version_id, conn=conn)
        return deleted

    # =========================================================================
    # BATCH
    # =========================================================================

    async def append_batch(self, version_id: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """
        Append point rows to a PROCESSING version.

        The version row is share-locked for the insert so Finalize and
        Abort wait for in-flight batches.

        Returns:
            Number of rows inserted

        Raises:
            ValidationError: empty, oversized or malformed batch
            NotFoundError: unknown version
            ConflictError: version no longer accepts batches
        """
        if not rows:
            raise ValidationError("Batch contains no rows")
        if len(rows) > self.config.max_batch_rows:
            raise ValidationError(
                f"Batch of {len(rows)} rows exceeds the limit of {self.config.max_batch_rows}"
            )
        points = [build_point(version_id, i, row) for i, row in enumerate(rows)]

        with log_context(operation="import.batch", version_id=version_id):
            async with self.pool.connection() as conn, conn.transaction():
                # KEY SHARE blocks FOR UPDATE but lets concurrent batches
                # update the heartbeat without deadlocking each other
                version = await self.version_repo.get(version_id, conn=conn, lock="key_share")
                if version is None:
                    raise NotFoundError(f"Version {version_id} not found")
                if not version.accepts_batches:
                    raise ConflictError(
                        f"Version {version_id} is {version.status.value}, not accepting batches"
                    )
                inserted = await self.point_repo.insert_many(points, conn=conn)
                await self.version_repo.touch(version_id, conn=conn)

            logger.debug(f"[IMPORT] Batch of {inserted} rows into {version_id}")
        return inserted

    # =========================================================================
    # FINALIZE
    # =========================================================================

    async def finalize_version(
        self,
        version_id: str,
        dataset_id: str,
        row_count: int,
        checksum: str,
        has_dhi: Optional[bool] = None,
        has_dni: Optional[bool] = None,
    ) -> Tuple[str, int]:
        """
        Verify and promote a version to ACTIVE.

        On a row-count mismatch nothing changes and the version stays
        PROCESSING, so the client can resend batches or abort.

        Returns:
            (version_id, row_count)

        Raises:
            NotFoundError, ValidationError, ConflictError, IntegrityError
        """
        if row_count is None or row_count <= 0:
            raise ValidationError("row_count must be a positive integer")

        flags = {
            name: value
            for name, value in (("has_dhi", has_dhi), ("has_dni", has_dni))
            if value is not None
        }

        with log_context(operation="import.finalize", version_id=version_id):
            async with self.pool.connection() as conn, conn.transaction():
                version = await self.version_repo.get(version_id, conn=conn, lock="update")
                if version is None:
                    raise NotFoundError(f"Version {version_id} not found")
                if version.dataset_id != dataset_id:
                    raise ValidationError(
                        f"Version {version_id} does not belong to dataset {dataset_id}"
                    )
                if not version.accepts_batches:
                    raise ConflictError(
                        f"Version {version_id} is {version.status.value}, cannot finalize"
                    )

                stored = await self.point_repo.count(version_id, conn=conn)
                if stored != row_count:
                    logger.warning(
                        f"[IMPORT] Row count mismatch for {version_id}: "
                        f"expected {row_count}, stored {stored}"
                    )
                    raise IntegrityError(
                        f"Row count mismatch: expected {row_count}, stored {stored}",
                        expected=row_count,
                        actual=stored,
                    )

                demoted = await self.version_repo.deprecate_active(
                    dataset_id, keep_version_id=version_id, conn=conn
                )
                version.mark_active(stored, checksum, flags)
                await self.version_repo.update(version, conn=conn)
                invalidated = await self.cache_repo.delete_for_inactive_versions(
                    dataset_id, conn=conn
                )

            logger.info(
                f"[IMPORT] Promoted {version.version_tag} ({version_id}) with {stored} rows; "
                f"deprecated {len(demoted)}, invalidated {invalidated} cache entries"
            )
            log_checkpoint("version_promoted", {
                "version_tag": version.version_tag,
                "row_count": stored,
                "deprecated": demoted,
            }, logger=logger)

        return version_id, stored

    # =========================================================================
    # ABORT / DELETE / RECLAIM
    # =========================================================================

    async def abort_version(self, version_id: str, reason: Optional[str] = None) -> None:
        """
        Fail a PROCESSING version and purge its points.

        Aborting an already FAILED version is a no-op.

        Raises:
            NotFoundError: unknown version
            ConflictError: version is active or deprecated
        """
        with log_context(operation="import.abort", version_id=version_id):
            async with self.pool.connection() as conn, conn.transaction():
                version = await self.version_repo.get(version_id, conn=conn, lock="update")
                if version is None:
                    raise NotFoundError(f"Version {version_id} not found")
                if version.status == VersionStatus.FAILED:
                    logger.info(f"[IMPORT] Version {version_id} already failed")
                    return
                if version.status != VersionStatus.PROCESSING:
                    raise ConflictError(
                        f"Version {version_id} is {version.status.value}, cannot abort"
                    )

                version.mark_failed(reason)
                await self.version_repo.update(version, conn=conn)
                purged = await self.point_repo.delete_for_version(version_id, conn=conn)

            logger.warning(
                f"[IMPORT] Aborted {version.version_tag} ({version_id}): "
                f"{version.last_error}; {purged} points purged"
            )

    async def delete_version(self, dataset_code: str, version_tag: str) -> int:
        """
        Remove a version of any status with its points and cache rows.

        Returns:
            Number of point rows deleted
        """
        dataset = await self._get_dataset(dataset_code)
        tag = (version_tag or "").strip()

        with log_context(operation="import.delete_version", dataset_code=dataset.code):
            async with self.pool.connection() as conn, conn.transaction():
                version = await self.version_repo.get_by_tag(
                    dataset.dataset_id, tag, conn=conn, lock="update"
                )
                if version is None:
                    raise NotFoundError(f"Version '{tag}' of {dataset.code} not found")
                deleted = await self._purge(version.version_id, conn)
                await self.version_repo.delete(version.version_id, conn=conn)

            if version.status == VersionStatus.ACTIVE:
                logger.warning(
                    f"[IMPORT] Deleted the active version of {dataset.code}; "
                    f"local grid lookups have no version until the next finalize"
                )
            logger.info(f"[IMPORT] Deleted {dataset.code}/{tag} ({deleted} points)")
        return deleted

    async def reclaim_stale_versions(self, older_than_seconds: Optional[int] = None) -> List[str]:
        """
        Fail PROCESSING versions with no batch activity for the threshold.

        Returns:
            IDs of reclaimed versions
        """
        threshold = (
            self.config.stale_after_seconds if older_than_seconds is None else older_than_seconds
        )
        if threshold <= 0:
            raise ValidationError("older_than_seconds must be positive")

        reclaimed: List[str] = []
        with log_context(operation="import.reclaim"):
            async with self.pool.connection() as conn, conn.transaction():
                stale = await self.version_repo.lock_stale_processing(threshold, conn=conn)
                for version in stale:
                    version.mark_failed(f"Reclaimed: no import activity for {threshold}s")
                    await self.version_repo.update(version, conn=conn)
                    await self.point_repo.delete_for_version(version.version_id, conn=conn)
                    reclaimed.append(version.version_id)

            if reclaimed:
                logger.warning(f"[IMPORT] Reclaimed {len(reclaimed)} stale versions: {reclaimed}")
        return reclaimed


__all__ = ["ImportService", "build_point"]
