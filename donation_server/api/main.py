"""
FastAPI application entry point.

This is the main FastAPI application that handles:
- Twilio SMS and voice webhooks
- Authenticated diagnostics (event log)
- Health checks
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from donation_server import __version__
from donation_server.api.routes import (
    events_router,
    health_router,
    sms_router,
    voice_router,
)
from donation_server.config import settings
from donation_server.logging_config import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        cardknox_configured=settings.cardknox_configured,
        twilio_signature_validation=bool(settings.twilio_auth_token),
        diagnostics_enabled=bool(settings.admin_api_key),
    )

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="Donation Line",
    description="Card donations over SMS and touch-tone phone calls",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─────────────────────────────────────────────────────────────────────────────
# Include Routers
# ─────────────────────────────────────────────────────────────────────────────

# API v1 routes
app.include_router(health_router, prefix="/api/v1")
app.include_router(sms_router, prefix="/api/v1")
app.include_router(voice_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")

# Also mount health at root for simpler health checks
app.include_router(health_router)


# ─────────────────────────────────────────────────────────────────────────────
# Root Endpoint
# ─────────────────────────────────────────────────────────────────────────────

@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {
        "name": "Donation Line",
        "version": __version__,
        "status": "running",
        "health": "/health",
        "sms_webhook": "/api/v1/webhook/sms",
        "voice_webhook": settings.voice_base_path,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Run with Uvicorn (for development)
# ─────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "donation_server.api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
        log_level="debug" if settings.environment == "development" else "info",
    )
