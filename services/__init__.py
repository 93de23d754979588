# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Business logic layer
# PURPOSE: Tiered lookup and dataset import services
# CREATED: 15 SEP 2026
# ============================================================================
"""
Services Module

Business logic for irradiance resolution.
Services coordinate between repositories and the tier resolvers.

Usage:
    from services import ResolutionService, ImportService

    resolution = ResolutionService(pool)
    result = await resolution.resolve(-15.05, -47.02)
"""

from .resolution_service import ResolutionService
from .import_service import ImportService

__all__ = [
    "ResolutionService",
    "ImportService",
]
