"""
Health check endpoints for monitoring and deployment.
"""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from donation_server import __version__
from donation_server.config import settings
from donation_server.integrations.cardknox import get_payment_client
from donation_server.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    version: str
    environment: str
    checks: dict[str, bool]


class ReadinessStatus(BaseModel):
    """Readiness check response model."""
    ready: bool
    checks: dict[str, dict]


@router.get("", response_model=HealthStatus)
@router.get("/", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """
    Basic health check endpoint.

    Returns basic application status without checking dependencies.
    Used by load balancers for simple alive checks.
    """
    return HealthStatus(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=__version__,
        environment=settings.environment,
        checks={"app": True}
    )


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check() -> ReadinessStatus:
    """
    Readiness check with configuration verification.

    The service cannot take donations without a gateway key, so that is
    the one hard requirement.
    """
    checks = {}

    gateway_configured = get_payment_client().is_configured
    checks["cardknox"] = {
        "status": "ok" if gateway_configured else "not_configured",
        "configured": gateway_configured,
    }
    if not gateway_configured:
        logger.warning("health_check_gateway_not_configured")

    twilio_configured = bool(settings.twilio_auth_token)
    checks["twilio"] = {
        "status": "ok" if twilio_configured else "not_configured",
        "configured": twilio_configured,
    }

    return ReadinessStatus(
        ready=gateway_configured,
        checks=checks
    )


@router.get("/live")
async def liveness_check() -> dict:
    """
    Simple liveness probe.

    Returns 200 if the application process is running.
    """
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}
