"""Tests for background sweeping."""

import threading
import time

from completions_api.cache import TTLCache
from completions_api.rate_limit import RateLimiter
from completions_api.sweeper import PeriodicSweeper


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_sweeper_runs_task_repeatedly():
    """Test that the task is called on every tick."""
    calls = []
    sweeper = PeriodicSweeper(lambda: calls.append(1), interval_ms=10)
    try:
        assert _wait_for(lambda: len(calls) >= 3)
        assert sweeper.running is True
    finally:
        sweeper.stop()


def test_sweeper_stop_is_idempotent():
    """Test that stop halts the thread and may be called again."""
    calls = []
    sweeper = PeriodicSweeper(lambda: calls.append(1), interval_ms=10)
    sweeper.stop()
    sweeper.stop()
    assert sweeper.running is False
    count = len(calls)
    time.sleep(0.05)
    assert len(calls) == count


def test_sweeper_survives_failing_task():
    """Test that an exception in one sweep does not end the loop."""
    calls = []

    def _task():
        calls.append(1)
        raise RuntimeError("boom")

    sweeper = PeriodicSweeper(_task, interval_ms=10)
    try:
        assert _wait_for(lambda: len(calls) >= 2)
    finally:
        sweeper.stop()


def test_sweeper_thread_is_daemon():
    """Test that a forgotten sweeper never keeps the process alive."""
    sweeper = PeriodicSweeper(lambda: None, interval_ms=60_000, name="daemon-check")
    try:
        thread = next(t for t in threading.enumerate() if t.name == "daemon-check")
        assert thread.daemon is True
    finally:
        sweeper.stop()


def test_cache_sweep_evicts_without_access(clock):
    """Test that expired cache entries disappear without any get/has."""
    cache = TTLCache(default_ttl_ms=1000, sweep_interval_ms=10, clock=clock)
    try:
        cache.set("short", 1, 100)
        cache.set("long", 2)
        clock.advance(500)
        assert _wait_for(lambda: cache.size() == 1)
        assert cache.has("long") is True
    finally:
        cache.destroy()


def test_cache_destroy_stops_automatic_eviction(clock):
    """Test that no sweep runs after destroy."""
    cache = TTLCache(default_ttl_ms=1000, sweep_interval_ms=10, clock=clock)
    cache.destroy()
    cache.set("key", "value", 100)
    clock.advance(500)
    time.sleep(0.1)
    assert cache.size() == 1


def test_rate_limiter_sweep_reclaims_windows(clock):
    """Test that stale identifiers are removed in the background."""
    limiter = RateLimiter(window_ms=100, max_requests=5, sweep_interval_ms=10, clock=clock)
    try:
        limiter.is_allowed("A")
        limiter.is_allowed("B")
        clock.advance(101)
        assert _wait_for(lambda: limiter.get_size() == 0)
    finally:
        limiter.destroy()
