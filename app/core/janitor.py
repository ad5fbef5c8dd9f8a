"""Background sweep of stale rate limit counters.

The janitor bounds the memory held by the counter store. It never takes part
in accept/reject decisions: it only evicts counters whose window opened
longer ago than the retention horizon, which is independent of any policy
window.

Usage:
    janitor = RateLimitJanitor(store)
    await janitor.start()   # application startup
    await janitor.stop()    # application shutdown
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from app.adapters.rate_limit.base import AbstractCounterStore
from app.services.rate_limit_service import current_time_ms

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 15 * 60
DEFAULT_RETENTION_MS = 60 * 60 * 1000


class RateLimitJanitor:
    """Periodically evict stale counters from a counter store."""

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        retention_ms: int = DEFAULT_RETENTION_MS,
        clock: Callable[[], int] = current_time_ms,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        if retention_ms < 1:
            raise ValueError("retention_ms must be >= 1")

        self._store = store
        self._interval = interval_seconds
        self._retention_ms = retention_ms
        self._clock = clock
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Sweep the store once.

        Returns:
            Number of evicted counters.
        """

        removed = self._store.sweep(self._retention_ms, self._clock())
        logger.info(
            "rate_limit.sweep",
            extra={
                "removed": removed,
                "remaining_keys": len(self._store),
                "retention_ms": self._retention_ms,
            },
        )
        return removed

    async def start(self) -> None:
        """Start the background sweep task (no-op if already running)."""

        if not self.running:
            self._task = asyncio.create_task(self._loop())
            logger.info(
                "rate_limit.janitor_started",
                extra={"interval_s": self._interval, "retention_ms": self._retention_ms},
            )

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""

        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("rate_limit.janitor_stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.run_once()
            except Exception as exc:  # keep sweeping on the next tick
                logger.error(
                    "rate_limit.sweep_failed",
                    extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
                )
