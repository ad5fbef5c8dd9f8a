"""Pydantic schemas for analytics tracking requests and responses.

Field names follow Python conventions; the JSON wire format uses camelCase
aliases to match what the portfolio front-end sends and expects.
"""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VisitRequest(CamelModel):
    """Page visit reported by the front-end."""

    page: str = Field(..., min_length=1, max_length=2048, description="Visited page path.")
    referrer: str | None = Field(
        default=None,
        max_length=2048,
        description="Document referrer; stored as 'direct' when absent.",
    )
    user_agent: str | None = Field(default=None, max_length=1024)
    timestamp: datetime | None = Field(
        default=None, description="Client-side visit time; server time when absent."
    )
    screen_width: int | None = Field(default=None, ge=0)
    screen_height: int | None = Field(default=None, ge=0)


class ClickRequest(CamelModel):
    """Button or link click reported by the front-end."""

    button: str = Field(..., min_length=1, max_length=256, description="Button name.")
    page: str = Field(..., min_length=1, max_length=2048)
    destination: str | None = Field(default=None, max_length=2048)
    timestamp: datetime | None = None


class TimeSpentRequest(CamelModel):
    """Time spent on a page, in seconds."""

    page: str = Field(..., min_length=1, max_length=2048)
    time_spent: float = Field(..., ge=0, description="Seconds spent on the page.")
    timestamp: datetime | None = None


class ClearRequest(CamelModel):
    """Retention request for the admin clear endpoint."""

    older_than_days: int = Field(90, ge=0, description="Delete records older than this.")


class VisitResponse(CamelModel):
    success: bool = True
    visit_id: int
    timestamp: datetime


class ClickResponse(CamelModel):
    success: bool = True
    click_id: int
    timestamp: datetime


class TimeSpentResponse(CamelModel):
    success: bool = True
    tracking_id: int


class Overview(CamelModel):
    total_visits: int
    unique_days: int
    unique_visitors: int


class PageVisitsRow(CamelModel):
    page: str
    visits: int
    unique_visitors: int


class ReferrerRow(CamelModel):
    source: str
    count: int


class ButtonClicksRow(CamelModel):
    button_name: str
    destination: str | None
    clicks: int


class DailyActivityRow(CamelModel):
    date: Date
    visits: int
    unique_visitors: int


class TimeSpentRow(CamelModel):
    page: str
    avg_seconds: float
    min_seconds: float
    max_seconds: float


class DeviceRow(CamelModel):
    device_type: str
    count: int


class AnalyticsStats(CamelModel):
    """Aggregated analytics across all stored events."""

    overview: Overview
    visits_by_page: List[PageVisitsRow] = Field(default_factory=list)
    top_referrers: List[ReferrerRow] = Field(default_factory=list)
    button_clicks: List[ButtonClicksRow] = Field(default_factory=list)
    recent_activity: List[DailyActivityRow] = Field(default_factory=list)
    avg_time_spent: List[TimeSpentRow] = Field(default_factory=list)
    device_breakdown: List[DeviceRow] = Field(default_factory=list)
    generated_at: datetime


class StatsResponse(CamelModel):
    success: bool = True
    stats: AnalyticsStats


class LiveVisit(CamelModel):
    page: str
    referrer: str
    visited_at: datetime
    seconds_ago: float


class LiveResponse(CamelModel):
    success: bool = True
    live_visits: List[LiveVisit] = Field(default_factory=list)
    count: int


class ClearResponse(CamelModel):
    success: bool = True
    deleted_records: int
    older_than_days: int
