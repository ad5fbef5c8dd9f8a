from __future__ import annotations

from app.api.routes.analytics import router as analytics_router
from app.api.routes.health import router as health_router

__all__ = ["analytics_router", "health_router"]
