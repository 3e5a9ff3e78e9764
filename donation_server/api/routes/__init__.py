"""
API route modules.
"""

from donation_server.api.routes.events import router as events_router
from donation_server.api.routes.health import router as health_router
from donation_server.api.routes.sms import router as sms_router
from donation_server.api.routes.voice import router as voice_router

__all__ = ["events_router", "health_router", "sms_router", "voice_router"]
