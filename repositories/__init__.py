# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Database access layer
# PURPOSE: CRUD operations for datasets, versions, points and the cache
# CREATED: 14 SEP 2026
# ============================================================================
"""
Repositories Module

Provides database access for irradiance entities.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import get_pool, DatasetVersionRepository

    pool = await get_pool()
    version_repo = DatasetVersionRepository(pool)
    version = await version_repo.get(version_id)
"""

from .database import get_pool, use_connection
from .dataset_repo import DatasetRepository
from .version_repo import DatasetVersionRepository
from .point_repo import IrradiancePointRepository
from .cache_repo import CoordinateCacheRepository

__all__ = [
    "get_pool",
    "use_connection",
    "DatasetRepository",
    "DatasetVersionRepository",
    "IrradiancePointRepository",
    "CoordinateCacheRepository",
]
