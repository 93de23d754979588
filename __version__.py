# ============================================================================
# VERSION - IRRADIANCE SERVICE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# ============================================================================
"""
Version information for the Irradiance Service.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch
# Criteria for 0.2 - import pipeline drives the local grid tier end to end
__version__ = "0.2.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-09-16"

EPOCH = 1
CODENAME = "Irradiance Resolution"
