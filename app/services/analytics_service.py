"""Analytics service recording front-end events and aggregating statistics.

This service is the business logic behind the /analytics routes. It handles:
- Normalizing tracked events (defaults, timezone handling)
- Aggregations for the stats dashboard (pages, referrers, clicks, devices)
- The live feed of recent visits
- Retention-based clearing of old events
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from app.adapters.analytics.base import AbstractAnalyticsRepository, PageVisit
from app.core.config import settings
from app.schemas.analytics import (
    AnalyticsStats,
    ButtonClicksRow,
    ClickRequest,
    ClickResponse,
    ClearResponse,
    DailyActivityRow,
    DeviceRow,
    LiveResponse,
    LiveVisit,
    Overview,
    PageVisitsRow,
    ReferrerRow,
    TimeSpentRequest,
    TimeSpentResponse,
    TimeSpentRow,
    VisitRequest,
    VisitResponse,
)

logger = logging.getLogger(__name__)

DIRECT_REFERRER = "direct"
TOP_REFERRERS_LIMIT = 10

# Ordered (needles, label) pairs; first match wins.
REFERRER_SOURCES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("google",), "Google"),
    (("patreon",), "Patreon"),
    (("twitter", "x.com"), "Twitter/X"),
    (("facebook",), "Facebook"),
    (("instagram",), "Instagram"),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def classify_referrer(referrer: str) -> str:
    """Map a raw referrer to a traffic source label.

    Examples:
        >>> classify_referrer("direct")
        'Direct Traffic'
        >>> classify_referrer("https://www.google.com/search?q=chef")
        'Google'
        >>> classify_referrer("https://example.org/")
        'https://example.org/'
    """
    if referrer == DIRECT_REFERRER:
        return "Direct Traffic"

    lowered = referrer.lower()
    for needles, label in REFERRER_SOURCES:
        if any(needle in lowered for needle in needles):
            return label
    return referrer


def classify_device(user_agent: str | None) -> str:
    """Bucket a user agent into Mobile, Tablet or Desktop."""
    if user_agent and "Mobile" in user_agent:
        return "Mobile"
    if user_agent and "Tablet" in user_agent:
        return "Tablet"
    return "Desktop"


def _unique_visitors(visits: list[PageVisit]) -> int:
    return len({v.ip_address for v in visits if v.ip_address})


class AnalyticsService:
    """Record analytics events and build dashboard statistics."""

    def __init__(
        self,
        repository: AbstractAnalyticsRepository,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._repository = repository
        self._clock = clock

    def record_visit(self, payload: VisitRequest, *, ip_address: str | None) -> VisitResponse:
        """Store a page visit.

        Args:
            payload: Visit data from the front-end.
            ip_address: Client address attributed to the request.

        Returns:
            VisitResponse with the new visit id and stored timestamp.
        """
        visit = self._repository.add_visit(
            page=payload.page,
            referrer=payload.referrer or DIRECT_REFERRER,
            user_agent=payload.user_agent,
            visited_at=_as_utc(payload.timestamp) if payload.timestamp else self._clock(),
            ip_address=ip_address,
            screen_width=payload.screen_width,
            screen_height=payload.screen_height,
        )
        logger.info(
            "analytics.visit_recorded",
            extra={"visit_id": visit.id, "page": visit.page},
        )
        return VisitResponse(visit_id=visit.id, timestamp=visit.visited_at)

    def record_click(self, payload: ClickRequest) -> ClickResponse:
        click = self._repository.add_click(
            button_name=payload.button,
            page=payload.page,
            destination=payload.destination,
            clicked_at=_as_utc(payload.timestamp) if payload.timestamp else self._clock(),
        )
        logger.info(
            "analytics.click_recorded",
            extra={"click_id": click.id, "button_name": click.button_name},
        )
        return ClickResponse(click_id=click.id, timestamp=click.clicked_at)

    def record_time_spent(self, payload: TimeSpentRequest) -> TimeSpentResponse:
        tracking = self._repository.add_time_tracking(
            page=payload.page,
            time_spent_seconds=payload.time_spent,
            tracked_at=_as_utc(payload.timestamp) if payload.timestamp else self._clock(),
        )
        logger.info(
            "analytics.time_spent_recorded",
            extra={"tracking_id": tracking.id, "page": tracking.page},
        )
        return TimeSpentResponse(tracking_id=tracking.id)

    def stats(self) -> AnalyticsStats:
        """Aggregate every stored event into dashboard statistics.

        Returns:
            AnalyticsStats covering overview counts, per-page visits, top
            referrers, click counts, recent daily activity, time spent and
            device breakdown.
        """
        now = self._clock()
        visits = self._repository.list_visits()
        clicks = self._repository.list_clicks()
        tracking = self._repository.list_time_tracking()

        overview = Overview(
            total_visits=len(visits),
            unique_days=len({v.visited_at.date() for v in visits}),
            unique_visitors=_unique_visitors(visits),
        )

        by_page: dict[str, list[PageVisit]] = defaultdict(list)
        for visit in visits:
            by_page[visit.page].append(visit)
        visits_by_page = sorted(
            (
                PageVisitsRow(page=page, visits=len(rows), unique_visitors=_unique_visitors(rows))
                for page, rows in by_page.items()
            ),
            key=lambda row: row.visits,
            reverse=True,
        )

        referrer_counts = Counter(classify_referrer(v.referrer) for v in visits)
        top_referrers = [
            ReferrerRow(source=source, count=count)
            for source, count in referrer_counts.most_common(TOP_REFERRERS_LIMIT)
        ]

        click_counts = Counter((c.button_name, c.destination) for c in clicks)
        button_clicks = [
            ButtonClicksRow(button_name=name, destination=destination, clicks=count)
            for (name, destination), count in click_counts.most_common()
        ]

        recent_cutoff = now - timedelta(days=settings.app.stats_recent_days)
        by_day: dict[date, list[PageVisit]] = defaultdict(list)
        for visit in visits:
            if visit.visited_at >= recent_cutoff:
                by_day[visit.visited_at.date()].append(visit)
        recent_activity = [
            DailyActivityRow(date=day, visits=len(rows), unique_visitors=_unique_visitors(rows))
            for day, rows in sorted(by_day.items(), reverse=True)
        ]

        seconds_by_page: dict[str, list[float]] = defaultdict(list)
        for entry in tracking:
            seconds_by_page[entry.page].append(entry.time_spent_seconds)
        avg_time_spent = [
            TimeSpentRow(
                page=page,
                avg_seconds=sum(values) / len(values),
                min_seconds=min(values),
                max_seconds=max(values),
            )
            for page, values in seconds_by_page.items()
        ]

        device_counts = Counter(classify_device(v.user_agent) for v in visits)
        device_breakdown = [
            DeviceRow(device_type=device, count=count) for device, count in device_counts.items()
        ]

        return AnalyticsStats(
            overview=overview,
            visits_by_page=visits_by_page,
            top_referrers=top_referrers,
            button_clicks=button_clicks,
            recent_activity=recent_activity,
            avg_time_spent=avg_time_spent,
            device_breakdown=device_breakdown,
            generated_at=now,
        )

    def live(self) -> LiveResponse:
        """Return the most recent visits within the live window, newest first."""
        now = self._clock()
        cutoff = now - timedelta(hours=settings.app.live_window_hours)
        recent = sorted(
            (v for v in self._repository.list_visits() if v.visited_at >= cutoff),
            key=lambda v: v.visited_at,
            reverse=True,
        )[: settings.app.live_max_items]

        live_visits = [
            LiveVisit(
                page=v.page,
                referrer=v.referrer,
                visited_at=v.visited_at,
                seconds_ago=(now - v.visited_at).total_seconds(),
            )
            for v in recent
        ]
        return LiveResponse(live_visits=live_visits, count=len(live_visits))

    def clear(self, older_than_days: int) -> ClearResponse:
        """Delete every event older than the given number of days."""
        cutoff = self._clock() - timedelta(days=older_than_days)
        deleted = self._repository.delete_older_than(cutoff)
        logger.warning(
            "analytics.cleared",
            extra={"deleted_records": deleted, "older_than_days": older_than_days},
        )
        return ClearResponse(deleted_records=deleted, older_than_days=older_than_days)
