# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for tiers, imports, cache and database
# CREATED: 14 SEP 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for the resolution tiers, the import pipeline, the
coordinate cache and the database layer. Every group can be overridden via
environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive lat/lon rectangle in decimal degrees."""
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def contains(self, lat: float, lon: float) -> bool:
        return (
            self.lat_min <= lat <= self.lat_max
            and self.lon_min <= lon <= self.lon_max
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.lat_min, self.lat_max, self.lon_min, self.lon_max)


@dataclass(frozen=True)
class TierDefaults:
    """
    Defaults for the live resolution tiers.

    Tier 1 (NSRDB) only answers inside its coverage box; Tier 2
    (NASA POWER) answers anywhere on the globe.
    """
    # NSRDB (Tier 1)
    nsrdb_url: str = (
        "https://developer.nrel.gov/api/nsrdb/v2/solar/"
        "nsrdb-GOES-full-disc-v4-0-0-download.csv"
    )
    nsrdb_api_key: str = ""
    nsrdb_email: str = ""
    nsrdb_year: str = "2022"
    nsrdb_interval_minutes: int = 60
    nsrdb_coverage: BoundingBox = field(
        default_factory=lambda: BoundingBox(-35.0, 7.0, -75.0, -33.0)
    )
    nsrdb_min_body_chars: int = 100

    # NASA POWER (Tier 2)
    nasa_power_url: str = (
        "https://power.larc.nasa.gov/api/temporal/climatology/point"
    )
    nasa_power_community: str = "RE"
    # Allowed deviation (kWh/m²/day) between the monthly mean and ANN
    nasa_power_annual_tolerance: float = 0.05

    # Shared HTTP settings
    request_timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0
    user_agent: str = "irradiance-resolver/1.0"

    @property
    def nsrdb_configured(self) -> bool:
        return bool(self.nsrdb_api_key)

    @classmethod
    def from_env(cls) -> "TierDefaults":
        """Create from environment variables."""
        return cls(
            nsrdb_url=os.getenv("NSRDB_URL", cls.nsrdb_url),
            nsrdb_api_key=os.getenv("NSRDB_API_KEY", os.getenv("NREL_API_KEY", "")),
            nsrdb_email=os.getenv("NSRDB_EMAIL", ""),
            nsrdb_year=os.getenv("NSRDB_YEAR", "2022"),
            nsrdb_interval_minutes=_env_int("NSRDB_INTERVAL_MINUTES", 60),
            nsrdb_coverage=BoundingBox(
                lat_min=_env_float("NSRDB_LAT_MIN", -35.0),
                lat_max=_env_float("NSRDB_LAT_MAX", 7.0),
                lon_min=_env_float("NSRDB_LON_MIN", -75.0),
                lon_max=_env_float("NSRDB_LON_MAX", -33.0),
            ),
            nasa_power_url=os.getenv("NASA_POWER_URL", cls.nasa_power_url),
            nasa_power_annual_tolerance=_env_float("NASA_POWER_ANNUAL_TOLERANCE", 0.05),
            request_timeout_seconds=_env_float("TIER_TIMEOUT_SECONDS", 30.0),
            connect_timeout_seconds=_env_float("TIER_CONNECT_TIMEOUT_SECONDS", 10.0),
        )


@dataclass(frozen=True)
class LocalGridDefaults:
    """
    Defaults for Tier 3 (local reference grid).
    """
    default_dataset_code: str = "INPE_2017_SUNDATA"
    search_radius_deg: float = 0.5

    @classmethod
    def from_env(cls) -> "LocalGridDefaults":
        """Create from environment variables."""
        return cls(
            default_dataset_code=os.getenv("LOCAL_GRID_DATASET", "INPE_2017_SUNDATA"),
            search_radius_deg=_env_float("LOCAL_GRID_RADIUS_DEG", 0.5),
        )


@dataclass(frozen=True)
class ImportDefaults:
    """
    Defaults for the dataset import pipeline.
    """
    max_batch_rows: int = 5000
    # Processing versions without a batch for this long are reclaimable
    stale_after_seconds: int = 6 * 3600

    @classmethod
    def from_env(cls) -> "ImportDefaults":
        """Create from environment variables."""
        return cls(
            max_batch_rows=_env_int("IMPORT_MAX_BATCH_ROWS", 5000),
            stale_after_seconds=_env_int("IMPORT_STALE_AFTER_SECONDS", 6 * 3600),
        )


@dataclass(frozen=True)
class CacheDefaults:
    """
    Defaults for the coordinate cache.
    """
    # Decimal places kept in the cache key
    precision: int = 4
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "CacheDefaults":
        """Create from environment variables."""
        return cls(
            precision=_env_int("CACHE_PRECISION", 4),
            enabled=os.getenv("CACHE_ENABLED", "true").lower() != "false",
        )


@dataclass(frozen=True)
class DatabaseDefaults:
    """
    Defaults for the PostgreSQL layer.
    """
    schema: str = "irradiance"
    pool_min_size: int = 2
    pool_max_size: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            schema=os.getenv("DB_SCHEMA", "irradiance"),
            pool_min_size=_env_int("POOL_MIN_SIZE", 2),
            pool_max_size=_env_int("POOL_MAX_SIZE", 10),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    tiers: TierDefaults = field(default_factory=TierDefaults)
    local_grid: LocalGridDefaults = field(default_factory=LocalGridDefaults)
    imports: ImportDefaults = field(default_factory=ImportDefaults)
    cache: CacheDefaults = field(default_factory=CacheDefaults)
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            tiers=TierDefaults.from_env(),
            local_grid=LocalGridDefaults.from_env(),
            imports=ImportDefaults.from_env(),
            cache=CacheDefaults.from_env(),
            database=DatabaseDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BoundingBox",
    "TierDefaults",
    "LocalGridDefaults",
    "ImportDefaults",
    "CacheDefaults",
    "DatabaseDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
