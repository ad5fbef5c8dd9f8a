"""Analytics storage adapters - abstracts over where tracked events live."""

from app.adapters.analytics.base import (
    AbstractAnalyticsRepository,
    ButtonClick,
    PageVisit,
    TimeTracking,
)
from app.adapters.analytics.in_memory import InMemoryAnalyticsRepository

__all__ = [
    "AbstractAnalyticsRepository",
    "ButtonClick",
    "InMemoryAnalyticsRepository",
    "PageVisit",
    "TimeTracking",
]
