"""Fixed-window rate decision logic.

Each client key owns a single counter. A window opens on the first request
for the key and stays open for ``policy.window_ms``; the first request after
that resets the counter instead of accumulating. Every request is counted,
including the ones that get rejected, so a client retrying immediately after
a rejection keeps being rejected until the window expires.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.adapters.rate_limit.base import AbstractCounterStore, ClientKey, WindowCounter
from app.core.errors import ConfigurationAppError


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def current_time_ms() -> int:
    """Return wall-clock UNIX time in milliseconds."""

    return time.time_ns() // 1_000_000


def format_epoch_ms(epoch_ms: int) -> str:
    """Format epoch milliseconds as an ISO 8601 UTC string (``...sssZ``)."""

    moment = _EPOCH + timedelta(milliseconds=epoch_ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class RateLimitPolicy:
    """Immutable quota applied to a group of routes.

    Attributes:
        name: Label used in logs (e.g., "analytics", "stats", "strict").
        window_ms: Window duration in milliseconds.
        max_requests: Requests allowed per window.
        message: Message returned to clients when the quota is exceeded.

    Raises:
        ConfigurationAppError: If a field is missing or out of range.
    """

    name: str
    window_ms: int
    max_requests: int
    message: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationAppError(
                code="rate_limit_policy_invalid",
                message="Rate limit policy requires a name",
                details={"field": "name"},
            )
        for field_name in ("window_ms", "max_requests"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationAppError(
                    code="rate_limit_policy_invalid",
                    message=f"Rate limit policy '{self.name}' requires a positive integer {field_name}",
                    details={"field": field_name, "policy": self.name},
                )
        if not self.message:
            raise ConfigurationAppError(
                code="rate_limit_policy_invalid",
                message=f"Rate limit policy '{self.name}' requires a rejection message",
                details={"field": "message", "policy": self.name},
            )


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when exhausted).
        reset_at_ms: Epoch milliseconds when the current window ends.
        retry_after_seconds: Seconds until reset, only set when rejected.
        count: Counter value after this request.
        window_start_ms: Epoch milliseconds when the current window opened.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_seconds: int | None
    count: int
    window_start_ms: int

    @property
    def reset_at_iso(self) -> str:
        return format_epoch_ms(self.reset_at_ms)


class RateLimitService:
    """Apply rate limit policies against a counter store."""

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        clock: Callable[[], int] = current_time_ms,
    ) -> None:
        """Initialize the service.

        Args:
            store: Counter storage backend shared by every policy.
            clock: Time source returning UNIX time in milliseconds.
        """
        self._store = store
        self._clock = clock

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    def check(self, policy: RateLimitPolicy, key: ClientKey) -> RateLimitResult:
        """Count one request for key and decide whether it is allowed.

        Args:
            policy: Quota to enforce.
            key: Client identity and route.

        Returns:
            RateLimitResult with the decision and header metadata.
        """

        now = self._clock()

        with self._store.locked():
            counter = self._store.get(key)
            if counter is None or now - counter.window_start > policy.window_ms:
                counter = WindowCounter(count=0, window_start=now)
            counter.count += 1
            self._store.put(key, counter)
            count = counter.count
            window_start = counter.window_start

        remaining = max(0, policy.max_requests - count)
        reset_at = window_start + policy.window_ms

        if count > policy.max_requests:
            return RateLimitResult(
                allowed=False,
                limit=policy.max_requests,
                remaining=remaining,
                reset_at_ms=reset_at,
                retry_after_seconds=math.ceil((reset_at - now) / 1000),
                count=count,
                window_start_ms=window_start,
            )

        return RateLimitResult(
            allowed=True,
            limit=policy.max_requests,
            remaining=remaining,
            reset_at_ms=reset_at,
            retry_after_seconds=None,
            count=count,
            window_start_ms=window_start,
        )
