# ============================================================================
# DATASET MODEL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain model - Named reference dataset
# PURPOSE: Identity of a precomputed irradiance grid (e.g. INPE 2017 SUNDATA)
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
Dataset Model

A named, long-lived reference dataset. Versions hang off it; the dataset
itself is created once and is never deleted while versions reference it.

Maps to: irradiance.datasets
"""

import uuid
from datetime import datetime, timezone
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class Dataset(BaseModel):
    """
    A reference dataset served by the local grid tier.

    PK: dataset_id
    Unique: code
    """

    # SQL DDL METADATA
    __sql_table__: ClassVar[str] = "datasets"
    __sql_schema__: ClassVar[str] = "irradiance"
    __sql_primary_key__: ClassVar[List[str]] = ["dataset_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List] = [
        {"name": "uq_datasets_code", "columns": ["code"], "unique": True},
    ]

    dataset_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), max_length=36,
        description="UUID primary key",
    )
    code: str = Field(
        ..., max_length=64,
        description="Stable identifier used by callers ('INPE_2017_SUNDATA')",
    )
    label: str = Field(..., max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("code must not be empty")
        return value
