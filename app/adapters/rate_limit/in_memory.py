"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a re-entrant lock around shared state, shared by the
  window policy (via ``locked()``) and by ``sweep``.
"""

from __future__ import annotations

import threading

from app.adapters.rate_limit.base import AbstractCounterStore, ClientKey, WindowCounter


class InMemoryCounterStore(AbstractCounterStore):
    """Dictionary-backed store mapping ClientKey to WindowCounter.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counters: dict[ClientKey, WindowCounter] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCounterStore(size={len(self._counters)})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._counters

    def locked(self) -> threading.RLock:
        return self._lock

    def get(self, key: ClientKey) -> WindowCounter | None:
        with self._lock:
            return self._counters.get(key)

    def put(self, key: ClientKey, counter: WindowCounter) -> None:
        with self._lock:
            self._counters[key] = counter

    def sweep(self, max_age_ms: int, now_ms: int) -> int:
        """Remove counters older than the retention horizon.

        Args:
            max_age_ms: Retention horizon in milliseconds.
            now_ms: Current time in epoch milliseconds.

        Returns:
            Number of removed counters.
        """

        with self._lock:
            stale_keys = [
                key
                for key, counter in self._counters.items()
                if now_ms - counter.window_start > max_age_ms
            ]
            for key in stale_keys:
                del self._counters[key]
        return len(stale_keys)

    def clear(self) -> None:
        """Remove all counters."""

        with self._lock:
            self._counters.clear()
