# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 14 SEP 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the resolution service.
"""

from core.config.defaults import (
    BoundingBox,
    TierDefaults,
    LocalGridDefaults,
    ImportDefaults,
    CacheDefaults,
    DatabaseDefaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "BoundingBox",
    "TierDefaults",
    "LocalGridDefaults",
    "ImportDefaults",
    "CacheDefaults",
    "DatabaseDefaults",
    "get_defaults",
    "reset_defaults",
]
