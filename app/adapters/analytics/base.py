"""Analytics repository interface and event records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PageVisit:
    id: int
    page: str
    referrer: str
    user_agent: str | None
    visited_at: datetime
    ip_address: str | None
    screen_width: int | None = None
    screen_height: int | None = None


@dataclass(frozen=True)
class ButtonClick:
    id: int
    button_name: str
    page: str
    destination: str | None
    clicked_at: datetime


@dataclass(frozen=True)
class TimeTracking:
    id: int
    page: str
    time_spent_seconds: float
    tracked_at: datetime


class AbstractAnalyticsRepository(ABC):
    """Storage for tracked analytics events.

    Implementations assign ids, keep events in insertion order and must be
    safe to call from concurrent requests.
    """

    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
    def add_click(
        self,
        *,
        button_name: str,
        page: str,
        destination: str | None,
        clicked_at: datetime,
    ) -> ButtonClick:
        raise NotImplementedError

    @abstractmethod
    def add_time_tracking(
        self,
        *,
        page: str,
        time_spent_seconds: float,
        tracked_at: datetime,
    ) -> TimeTracking:
        raise NotImplementedError

    @abstractmethod
    def list_visits(self) -> list[PageVisit]:
        raise NotImplementedError

    @abstractmethod
    def list_clicks(self) -> list[ButtonClick]:
        raise NotImplementedError

    @abstractmethod
    def list_time_tracking(self) -> list[TimeTracking]:
        raise NotImplementedError

    @abstractmethod
    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete every event recorded before cutoff.

        Returns:
            Total number of deleted events across all event types.
        """
        raise NotImplementedError
