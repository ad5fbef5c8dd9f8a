"""Analytics tracking and reporting endpoints.

Write endpoints are fed by the portfolio front-end and share the analytics
rate limit policy; read endpoints use the stricter stats policy; clearing
data is counted against the strict policy before the admin API key is checked,
so failed key guesses use up the same quota.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, status

from app.adapters.analytics.in_memory import InMemoryAnalyticsRepository
from app.core.auth import verify_api_key
from app.core.rate_limit import (
    analytics_rate_limit,
    resolve_client_address,
    stats_rate_limit,
    strict_rate_limit,
)
from app.schemas.analytics import (
    ClearRequest,
    ClearResponse,
    ClickRequest,
    ClickResponse,
    LiveResponse,
    StatsResponse,
    TimeSpentRequest,
    TimeSpentResponse,
    VisitRequest,
    VisitResponse,
)
from app.services.analytics_service import AnalyticsService

router = APIRouter(tags=["Analytics"])

_analytics_service = AnalyticsService(repository=InMemoryAnalyticsRepository())


def get_analytics_service() -> AnalyticsService:
    """Return the process-wide analytics service (overridable in tests)."""
    return _analytics_service


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]


@router.post(
    "/visit",
    response_model=VisitResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(analytics_rate_limit)],
)
async def track_visit(
    payload: VisitRequest,
    request: Request,
    service: AnalyticsServiceDep,
) -> VisitResponse:
    """Track a page visit with its referrer, user agent and screen size."""
    ip_address = resolve_client_address(request)
    return service.record_visit(payload, ip_address=ip_address)


@router.post(
    "/click",
    response_model=ClickResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(analytics_rate_limit)],
)
async def track_click(payload: ClickRequest, service: AnalyticsServiceDep) -> ClickResponse:
    """Track a button or link click with its destination."""
    return service.record_click(payload)


@router.post(
    "/time-spent",
    response_model=TimeSpentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(analytics_rate_limit)],
)
async def track_time_spent(
    payload: TimeSpentRequest, service: AnalyticsServiceDep
) -> TimeSpentResponse:
    """Track how long a visitor stayed on a page."""
    return service.record_time_spent(payload)


@router.get(
    "/stats",
    response_model=StatsResponse,
    dependencies=[Depends(stats_rate_limit)],
)
async def get_stats(service: AnalyticsServiceDep) -> StatsResponse:
    """Return aggregated analytics for the dashboard."""
    return StatsResponse(stats=service.stats())


@router.get(
    "/live",
    response_model=LiveResponse,
    dependencies=[Depends(stats_rate_limit)],
)
async def get_live(service: AnalyticsServiceDep) -> LiveResponse:
    """Return visits from the live window, newest first."""
    return service.live()


@router.delete(
    "/clear",
    response_model=ClearResponse,
    dependencies=[Depends(strict_rate_limit), Depends(verify_api_key)],
)
async def clear_old_data(
    service: AnalyticsServiceDep,
    payload: Annotated[ClearRequest | None, Body()] = None,
) -> ClearResponse:
    """Delete analytics events older than ``olderThanDays`` (default 90)."""
    older_than_days = (payload or ClearRequest()).older_than_days
    return service.clear(older_than_days)
