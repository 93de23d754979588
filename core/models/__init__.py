# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
Models Module - Central Export Point

Models define SQL metadata via __sql_* ClassVar attributes for DDL generation.

Single Source of Truth Pattern:
    - Pydantic models define structure
    - PydanticToSQL reads __sql_* metadata
    - PostgreSQL schema generated from models
"""

from core.models.series import MonthlySeries
from core.models.dataset import Dataset
from core.models.dataset_version import DatasetVersion
from core.models.irradiance_point import IrradiancePoint
from core.models.cache_entry import CacheEntry, CacheKey
from core.models.resolution import TierResult, ResolutionResult

__all__ = [
    # Series
    "MonthlySeries",
    # Datasets
    "Dataset",
    "DatasetVersion",
    "IrradiancePoint",
    # Cache
    "CacheEntry",
    "CacheKey",
    # Resolution
    "TierResult",
    "ResolutionResult",
]
