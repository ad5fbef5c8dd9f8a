from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])

_started_at = time.monotonic()


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.
    Not rate limited.

    Returns:
        dict: Status, current UTC timestamp, environment and uptime in seconds.
    """

    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.app_env,
        "uptime": round(time.monotonic() - _started_at, 3),
    }


@router.get("/")
def root() -> dict:
    """Describe the service and list its endpoints."""

    return {
        "message": settings.app.name,
        "version": settings.app.version,
        "endpoints": {
            "analytics": {
                "visit": "POST /analytics/visit",
                "click": "POST /analytics/click",
                "timeSpent": "POST /analytics/time-spent",
                "stats": "GET /analytics/stats",
                "live": "GET /analytics/live",
                "clear": "DELETE /analytics/clear",
            },
            "health": "GET /health",
        },
    }
