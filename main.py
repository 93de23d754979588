# ============================================================================
# IRRADIANCE SERVICE - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire pool, services, routers and health checks
# CREATED: 16 SEP 2026
# ============================================================================
"""
Irradiance Service Main Application

FastAPI application that:
1. Resolves monthly GHI/DHI for a coordinate (NSRDB → NASA POWER → local grid)
2. Accepts versioned reference-grid imports for the local grid tier
3. Exposes the health endpoints

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from __version__ import __version__, BUILD_DATE, EPOCH, CODENAME
from api import (
    dataset_router,
    import_router,
    lookup_router,
    set_import_services,
    set_lookup_services,
)
from core.errors import IrradianceError
from repositories.database import init_pool, close_pool
from services import ImportService, ResolutionService

# Health check system
from health import health_router, get_registry
from health.checks.application import set_resolution_service

# Configure logging using our structured logging system
from core.logging import ComponentType, configure_logging, get_logger

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__, ComponentType.API)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, cleans up on shutdown.
    """
    logger.info(f"Starting Irradiance Service v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    if os.environ.get("AUTO_BOOTSTRAP_SCHEMA", "").lower() == "true":
        logger.info("Auto-bootstrap enabled, deploying schema...")
        from scripts.deploy_schema import deploy_schema
        deploy_schema(dry_run=False, seed=True)

    pool = await init_pool()
    logger.info("Database pool initialized")

    resolution_service = ResolutionService(pool)
    import_service = ImportService(pool)
    logger.info(f"Resolution tiers: {[t.value for t in resolution_service.tiers]}")

    set_lookup_services(resolution_service)
    set_import_services(import_service)

    set_resolution_service(resolution_service)
    import health.checks  # Register all health check plugins
    get_registry().mark_initialized()
    logger.info(f"Health checks initialized ({len(get_registry())} checks registered)")

    yield

    logger.info("Shutting down Irradiance Service...")
    await close_pool()
    logger.info("Irradiance Service stopped")


def create_app() -> FastAPI:
    """Build the application; tests mount the same routers without the lifespan."""
    app = FastAPI(
        title="Irradiance Service",
        description=f"Epoch {EPOCH} {CODENAME}: tiered monthly irradiance lookup",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Health routes at the root (/livez, /readyz, /health)
    app.include_router(health_router)

    app.include_router(lookup_router, prefix="/api/v1")
    app.include_router(import_router, prefix="/api/v1")
    app.include_router(dataset_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": "Irradiance Service",
            "version": __version__,
            "epoch": EPOCH,
            "build_date": BUILD_DATE,
            "status": "running",
            "docs": "/docs",
        }

    return app


# ============================================================================
# ERROR MAPPING
# ============================================================================

def register_exception_handlers(app: FastAPI) -> None:
    """Every error body is {"error": ...}."""

    @app.exception_handler(IrradianceError)
    async def irradiance_error_handler(request: Request, exc: IrradianceError):
        if exc.http_status >= 500:
            logger.warning(f"{request.method} {request.url.path} → {exc.http_status}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=400,
            content={"error": f"{location}: {message}" if location else message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


app = create_app()


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
