"""
System health router.

Wired to:
- Settings for configuration
"""

import time

from fastapi import APIRouter

from perfcapture import __version__
from perfcapture.config import get_settings
from perfcapture.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()


@router.get("/health")
async def system_health():
    """
    Get system health status.
    Reports whether a default monitoring endpoint is bound.
    """
    settings = get_settings()
    uptime = time.time() - _startup_time

    return {
        "success": True,
        "data": {
            "status": "healthy" if settings.has_default_endpoint else "degraded",
            "version": __version__,
            "uptime_seconds": round(uptime, 1),
            "monitoring_endpoint_configured": settings.has_default_endpoint,
        },
    }
