# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for irradiance lookup and dataset import
# CREATED: 16 SEP 2026
# ============================================================================
"""
API Module

FastAPI routers for the irradiance service. main.py mounts them under
/api/v1 and injects services with the set_*_services functions.
"""

from .lookup_routes import router as lookup_router, set_lookup_services
from .import_routes import router as import_router, set_import_services
from .dataset_routes import router as dataset_router
from .auth import require_caller

__all__ = [
    "lookup_router",
    "import_router",
    "dataset_router",
    "set_lookup_services",
    "set_import_services",
    "require_caller",
]
