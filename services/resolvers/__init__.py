# ============================================================================
# TIER RESOLVERS MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Irradiance sources in fallback order
# PURPOSE: Export the three tier resolvers
# CREATED: 15 SEP 2026
# ============================================================================

from .base import TierResolver, LiveTierResolver
from .nsrdb import NsrdbResolver
from .nasa_power import NasaPowerResolver
from .local_grid import LocalGridResolver

__all__ = [
    "TierResolver",
    "LiveTierResolver",
    "NsrdbResolver",
    "NasaPowerResolver",
    "LocalGridResolver",
]
