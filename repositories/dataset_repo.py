# ============================================================================
# DATASET REPOSITORY
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain - Dataset CRUD operations
# PURPOSE: Database access for the datasets table
# CREATED: 14 SEP 2026
# ============================================================================
"""
Dataset Repository

Datasets are created once and only read afterwards; there is no delete.
All SQL uses psycopg sql.SQL composition for injection safety.
"""

import logging
from typing import Any, Dict, List, Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.models.dataset import Dataset
from .database import TABLE_DATASETS, use_connection

logger = logging.getLogger(__name__)


class DatasetRepository:
    """Repository for Dataset entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create(self, dataset: Dataset,
                     conn: Optional[AsyncConnection] = None) -> Dataset:
        """Insert a dataset. Raises psycopg UniqueViolation on duplicate code."""
        async with use_connection(self.pool, conn) as conn:
            await conn.execute(
                sql.SQL("""
                    INSERT INTO {} (
                        dataset_id, code, label, description, created_at, updated_at
                    ) VALUES (
                        %(dataset_id)s, %(code)s, %(label)s, %(description)s,
                        %(created_at)s, %(updated_at)s
                    )
                """).format(TABLE_DATASETS),
                {
                    "dataset_id": dataset.dataset_id,
                    "code": dataset.code,
                    "label": dataset.label,
                    "description": dataset.description,
                    "created_at": dataset.created_at,
                    "updated_at": dataset.updated_at,
                },
            )
            logger.info(f"Created dataset {dataset.code} ({dataset.dataset_id})")
            return dataset

    async def get(self, dataset_id: str,
                  conn: Optional[AsyncConnection] = None) -> Optional[Dataset]:
        """Get a dataset by ID."""
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE dataset_id = %s").format(TABLE_DATASETS),
                (dataset_id,),
            )
            row = await result.fetchone()
            return self._row_to_model(row) if row else None

    async def get_by_code(self, code: str,
                          conn: Optional[AsyncConnection] = None) -> Optional[Dataset]:
        """Get a dataset by its code (case-insensitive)."""
        async with use_connection(self.pool, conn) as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE code = %s").format(TABLE_DATASETS),
                (code.strip().upper(),),
            )
            row = await result.fetchone()
            return self._row_to_model(row) if row else None

    async def list_all(self) -> List[Dataset]:
        """List all datasets ordered by code."""
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} ORDER BY code").format(TABLE_DATASETS)
            )
            rows = await result.fetchall()
            return [self._row_to_model(row) for row in rows]

    def _row_to_model(self, row: Dict[str, Any]) -> Dataset:
        """Convert a database row to a Dataset instance."""
        return Dataset(
            dataset_id=row["dataset_id"],
            code=row["code"],
            label=row["label"],
            description=row.get("description"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at") or row["created_at"],
        )
