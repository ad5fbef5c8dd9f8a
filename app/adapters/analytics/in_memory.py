"""In-memory analytics repository.

Events live for the lifetime of the process only. Designed to be swapped
for a database-backed repository behind the same interface.
"""

from __future__ import annotations

import itertools
import threading
from datetime import datetime

from app.adapters.analytics.base import (
    AbstractAnalyticsRepository,
    ButtonClick,
    PageVisit,
    TimeTracking,
)


class InMemoryAnalyticsRepository(AbstractAnalyticsRepository):
    """Thread-safe list-backed repository with per-table id sequences."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._visits: list[PageVisit] = []
        self._clicks: list[ButtonClick] = []
        self._time_tracking: list[TimeTracking] = []
        self._visit_ids = itertools.count(1)
        self._click_ids = itertools.count(1)
        self._tracking_ids = itertools.count(1)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryAnalyticsRepository(visits={len(self._visits)}, "
            f"clicks={len(self._clicks)}, time_tracking={len(self._time_tracking)})"
        )

    def add_visit(
        self,
        *,
        page: str,
        referrer: str,
        user_agent: str | None,
        visited_at: datetime,
        ip_address: str | None,
        screen_width: int | None = None,
        screen_height: int | None = None,
    ) -> PageVisit:
        with self._lock:
            visit = PageVisit(
                id=next(self._visit_ids),
                page=page,
                referrer=referrer,
                user_agent=user_agent,
                visited_at=visited_at,
                ip_address=ip_address,
                screen_width=screen_width,
                screen_height=screen_height,
            )
            self._visits.append(visit)
            return visit

    def add_click(
        self,
        *,
        button_name: str,
        page: str,
        destination: str | None,
        clicked_at: datetime,
    ) -> ButtonClick:
        with self._lock:
            click = ButtonClick(
                id=next(self._click_ids),
                button_name=button_name,
                page=page,
                destination=destination,
                clicked_at=clicked_at,
            )
            self._clicks.append(click)
            return click

    def add_time_tracking(
        self,
        *,
        page: str,
        time_spent_seconds: float,
        tracked_at: datetime,
    ) -> TimeTracking:
        with self._lock:
            tracking = TimeTracking(
                id=next(self._tracking_ids),
                page=page,
                time_spent_seconds=time_spent_seconds,
                tracked_at=tracked_at,
            )
            self._time_tracking.append(tracking)
            return tracking

    def list_visits(self) -> list[PageVisit]:
        with self._lock:
            return list(self._visits)

    def list_clicks(self) -> list[ButtonClick]:
        with self._lock:
            return list(self._clicks)

    def list_time_tracking(self) -> list[TimeTracking]:
        with self._lock:
            return list(self._time_tracking)

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            before = len(self._visits) + len(self._clicks) + len(self._time_tracking)
            self._visits = [v for v in self._visits if v.visited_at >= cutoff]
            self._clicks = [c for c in self._clicks if c.clicked_at >= cutoff]
            self._time_tracking = [t for t in self._time_tracking if t.tracked_at >= cutoff]
            after = len(self._visits) + len(self._clicks) + len(self._time_tracking)
        return before - after
