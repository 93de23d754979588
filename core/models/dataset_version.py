# ============================================================================
# DATASET VERSION MODEL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Domain model - Versioned import of a dataset
# PURPOSE: Track import lifecycle, row counts and promotion per version
# LAST_REVIEWED: 14 SEP 2026
# ============================================================================
"""
DatasetVersion Model

One import of a Dataset. Lifecycle:

    processing ──finalize──▶ active ──(newer version promoted)──▶ deprecated
        │
        └──abort / reclaim──▶ failed

Invariants:
- (dataset_id, version_tag) is unique
- at most one version per dataset is active (partial unique index)
- processing leaves exactly once, to active or failed

Maps to: irradiance.dataset_versions
"""

import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import VersionStatus


class DatasetVersion(BaseModel):
    """
    One semantic version of a reference dataset.

    PK: version_id
    FK: dataset_id → datasets(dataset_id)

    Maps to: irradiance.dataset_versions
    """

    # SQL DDL METADATA
    __sql_table__: ClassVar[str] = "dataset_versions"
    __sql_schema__: ClassVar[str] = "irradiance"
    __sql_primary_key__: ClassVar[List[str]] = ["version_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        # Datasets are never deleted out from under their versions
        "dataset_id": "irradiance.datasets(dataset_id) RESTRICT",
    }
    __sql_indexes__: ClassVar[List] = [
        ("idx_dataset_versions_dataset", ["dataset_id"]),
        ("idx_dataset_versions_stale", ["updated_at"], "status = 'processing'"),
        {
            "name": "uq_dataset_versions_tag",
            "columns": ["dataset_id", "version_tag"],
            "unique": True,
        },
        {
            "name": "uq_dataset_versions_one_active",
            "columns": ["dataset_id"],
            "unique": True,
            "partial_where": "status = 'active'",
        },
    ]

    # ----------------------------------------------------------------
    # Identity
    # ----------------------------------------------------------------

    version_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), max_length=36,
        description="UUID primary key",
    )
    dataset_id: str = Field(..., max_length=36, description="FK to datasets")
    version_tag: str = Field(
        ..., max_length=100,
        description="Operator-chosen tag ('2017', '2023-rev2')",
    )

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------

    status: VersionStatus = Field(
        default=VersionStatus.PROCESSING,
        description="processing → active → deprecated | processing → failed",
    )
    row_count: int = Field(
        default=0, ge=0,
        description="Point rows confirmed at finalize",
    )
    checksum: Optional[str] = Field(
        default=None, max_length=128,
        description="Client-computed checksum, stored as provenance",
    )
    source_note: Optional[str] = Field(default=None, max_length=500)
    imported_by: Optional[str] = Field(default=None, max_length=128)
    last_error: Optional[str] = Field(default=None, max_length=2000)
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="File names, feature flags (has_dhi, has_dni)",
    )

    # ----------------------------------------------------------------
    # Timestamps
    # ----------------------------------------------------------------

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    activated_at: Optional[datetime] = Field(default=None)

    model_config = {"frozen": False}

    # ----------------------------------------------------------------
    # Computed fields
    # ----------------------------------------------------------------

    @computed_field
    @property
    def is_active(self) -> bool:
        """True if this version currently backs the local grid tier."""
        return self.status == VersionStatus.ACTIVE

    @computed_field
    @property
    def accepts_batches(self) -> bool:
        """True while point rows may still be appended."""
        return self.status == VersionStatus.PROCESSING

    # ----------------------------------------------------------------
    # Transitions
    # ----------------------------------------------------------------

    def mark_active(self, row_count: int, checksum: str,
                    flags: Optional[Dict[str, Any]] = None) -> None:
        """Transition: PROCESSING → ACTIVE."""
        if self.status != VersionStatus.PROCESSING:
            raise ValueError(
                f"Cannot finalize from state '{self.status.value}' "
                f"(must be '{VersionStatus.PROCESSING.value}')"
            )
        now = datetime.now(timezone.utc)
        self.status = VersionStatus.ACTIVE
        self.row_count = row_count
        self.checksum = checksum
        if flags:
            self.metadata = {**self.metadata, **flags}
        self.activated_at = now
        self.updated_at = now

    def mark_deprecated(self) -> None:
        """Transition: ACTIVE → DEPRECATED (another version was promoted)."""
        if self.status != VersionStatus.ACTIVE:
            raise ValueError(
                f"Cannot deprecate from state '{self.status.value}' "
                f"(must be '{VersionStatus.ACTIVE.value}')"
            )
        self.status = VersionStatus.DEPRECATED
        self.updated_at = datetime.now(timezone.utc)

    def mark_failed(self, error: Optional[str] = None) -> None:
        """Transition: PROCESSING → FAILED."""
        if self.status != VersionStatus.PROCESSING:
            raise ValueError(
                f"Cannot abort from state '{self.status.value}' "
                f"(must be '{VersionStatus.PROCESSING.value}')"
            )
        self.status = VersionStatus.FAILED
        self.last_error = (error or "aborted")[:2000]
        self.updated_at = datetime.now(timezone.utc)
