#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/main.py
# Main FastAPI application for the fleet compliance service

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from compliance_engine.config import get_config
from compliance_engine.errors import ComplianceError

from fleet_api.modules import vehicles, alerts, document_inbox, reports
from fleet_api.core.dependencies import initialize_system_components, check_system_health
from fleet_api.core.validators import ErrorMessageFormatter

config = get_config()

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def log_startup_banner():
    """Print startup message with useful information"""
    logger.info("=" * 70)
    logger.info("📡 Fleet Compliance API")
    logger.info("=" * 70)
    logger.info("🔗 API Documentation: http://localhost:8000/docs")
    logger.info("🚗 Vehicles endpoints: http://localhost:8000/api/vehicles")
    logger.info("🔔 Alerts endpoints: http://localhost:8000/api/alerts")
    logger.info("📥 Inbox endpoints: http://localhost:8000/api/inbox")
    logger.info("📊 Reports endpoints: http://localhost:8000/api/reports")
    logger.info("❤️  Health check: http://localhost:8000/health")
    logger.info("")
    logger.info("🔒 CORS Configuration:")
    if config.ALLOWED_ORIGINS:
        logger.info("   Mode: PRODUCTION (specific origins)")
        for origin in allowed_origins:
            logger.info(f"   - {origin}")
    else:
        logger.info("   Mode: DEVELOPMENT (localhost only)")
        logger.info("   ⚠️  Set ALLOWED_ORIGINS env var for production")
    logger.info("=" * 70)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    Handles startup and shutdown events
    """
    # ============================================================================
    # STARTUP
    # ============================================================================
    logger.info("🚀 Starting Fleet Compliance API...")
    config.print_config()

    try:
        initialize_system_components()
        logger.info("✅ System components initialized successfully")
    except Exception as e:
        logger.error("❌ Failed to initialize system: %s", e)
        raise

    log_startup_banner()

    yield

    # ============================================================================
    # SHUTDOWN
    # ============================================================================
    logger.info("🛑 Shutting down Fleet Compliance API...")


# Create FastAPI application
app = FastAPI(
    title="Fleet Compliance API",
    description="Vehicle document compliance: expiry tracking, alerts, AI-assisted document ingestion and reports",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)


# ============================================================================
# CORS CONFIGURATION
# ============================================================================

if config.ALLOWED_ORIGINS:
    allowed_origins = list(config.ALLOWED_ORIGINS)
    logger.info(f"🔒 CORS: Using specific origins from environment: {allowed_origins}")
else:
    allowed_origins = [
        "http://localhost:3000",      # React default
        "http://localhost:5173",      # Vite default
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]
    logger.warning("⚠️ CORS: Using development origins (localhost only)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-User-Id",
    ],
    expose_headers=["Content-Length", "X-Request-ID"],
    max_age=3600,  # Cache preflight requests for 1 hour
)


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(
    vehicles.vehicles_router,
    prefix="/api/vehicles",
    tags=["Vehicles"]
)

app.include_router(
    vehicles.documents_router,
    prefix="/api/vehicles",
    tags=["Vehicle Documents"]
)

app.include_router(
    alerts.alerts_router,
    prefix="/api/alerts",
    tags=["Alerts"]
)

app.include_router(
    document_inbox.inbox_router,
    prefix="/api/inbox",
    tags=["Document Inbox"]
)

app.include_router(
    reports.reports_router,
    prefix="/api/reports",
    tags=["Reports"]
)


# ============================================================================
# ROOT ENDPOINTS
# ============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint with API information
    """
    from fleet_api.modules import AVAILABLE_MODULES

    return {
        "name": "Fleet Compliance API",
        "version": API_VERSION,
        "status": "operational",
        "modules": {
            name: {k: v for k, v in info.items() if k != "routers"}
            for name, info in AVAILABLE_MODULES.items()
        },
        "endpoints": {
            "vehicles": "/api/vehicles",
            "alerts": "/api/alerts",
            "inbox": "/api/inbox",
            "reports": "/api/reports",
        },
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        },
    }


@app.get("/health", tags=["Root"])
async def health_check():
    """
    Health check with per-component status
    """
    health = await check_system_health()
    return {
        "status": health["overall"],
        "service": "Fleet Compliance API",
        "version": API_VERSION,
        "components": health["components"],
    }


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(ComplianceError)
async def compliance_exception_handler(request, exc):
    """
    Compliance errors that escaped a route
    """
    logger.warning(f"Unhandled compliance error: {exc}")
    return JSONResponse(
        status_code=ErrorMessageFormatter.status_code_for(exc),
        content={
            "success": False,
            "error": str(exc),
            "error_type": type(exc).__name__,
            "message": ErrorMessageFormatter.format_error(exc)
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for uncaught exceptions
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc),
            "error_type": type(exc).__name__,
            "message": "An internal server error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fleet_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
