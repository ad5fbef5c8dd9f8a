"""Tests for the background counter sweep."""

import asyncio
from unittest.mock import MagicMock, Mock

import pytest

from app.adapters.rate_limit import ClientKey, InMemoryCounterStore, WindowCounter
from app.core.janitor import RateLimitJanitor

HOUR_MS = 60 * 60 * 1000


def _seeded_store() -> InMemoryCounterStore:
    store = InMemoryCounterStore()
    store.put(ClientKey("stale", "/x"), WindowCounter(count=9, window_start=0))
    store.put(ClientKey("fresh", "/x"), WindowCounter(count=1, window_start=HOUR_MS))
    return store


def test_run_once_evicts_keys_older_than_retention() -> None:
    store = _seeded_store()
    janitor = RateLimitJanitor(store, retention_ms=HOUR_MS, clock=Mock(return_value=HOUR_MS + 1))

    removed = janitor.run_once()

    assert removed == 1
    assert store.get(ClientKey("stale", "/x")) is None
    assert store.get(ClientKey("fresh", "/x")) is not None


def test_run_once_keeps_everything_within_retention() -> None:
    store = _seeded_store()
    janitor = RateLimitJanitor(store, retention_ms=HOUR_MS, clock=Mock(return_value=HOUR_MS))

    assert janitor.run_once() == 0
    assert len(store) == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"interval_seconds": 0},
        {"retention_ms": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitJanitor(InMemoryCounterStore(), **kwargs)


@pytest.mark.asyncio
async def test_background_task_sweeps_periodically() -> None:
    store = _seeded_store()
    janitor = RateLimitJanitor(
        store,
        interval_seconds=0.01,
        retention_ms=HOUR_MS,
        clock=Mock(return_value=HOUR_MS + 1),
    )

    await janitor.start()
    assert janitor.running is True
    for _ in range(100):
        if len(store) == 1:
            break
        await asyncio.sleep(0.01)
    await janitor.stop()

    assert janitor.running is False
    assert store.get(ClientKey("stale", "/x")) is None
    assert store.get(ClientKey("fresh", "/x")) is not None


@pytest.mark.asyncio
async def test_loop_survives_sweep_errors() -> None:
    calls = []

    def flaky_sweep(max_age_ms: int, now_ms: int) -> int:
        calls.append(now_ms)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    store = MagicMock()
    store.sweep.side_effect = flaky_sweep
    store.__len__.return_value = 0
    janitor = RateLimitJanitor(store, interval_seconds=0.01, clock=Mock(return_value=0))

    await janitor.start()
    for _ in range(100):
        if store.sweep.call_count >= 2:
            break
        await asyncio.sleep(0.01)
    await janitor.stop()

    assert store.sweep.call_count >= 2


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_without_start_is_noop() -> None:
    janitor = RateLimitJanitor(InMemoryCounterStore(), interval_seconds=60)

    await janitor.stop()
    await janitor.start()
    first_task = janitor._task
    await janitor.start()

    assert janitor._task is first_task
    await janitor.stop()
    assert janitor.running is False
