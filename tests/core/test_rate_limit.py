"""Tests for the fixed-window rate limiter."""

import threading

from completions_api.rate_limit import RateLimiter, rate_limit_headers


def test_first_request_opens_window(limiter, clock):
    """Test that a fresh identifier gets a new window."""
    result = limiter.is_allowed("A")
    assert result.allowed is True
    assert result.remaining == 9
    assert result.reset_time == clock() + 60_000
    assert limiter.get_size() == 1


def test_remaining_decreases_until_denied(limiter):
    """Test that max_requests calls pass with decreasing remaining, then one is denied."""
    remaining = [limiter.is_allowed("A").remaining for _ in range(10)]
    assert remaining == list(range(9, -1, -1))

    denied = limiter.is_allowed("A")
    assert denied.allowed is False
    assert denied.remaining == 0


def test_denied_request_does_not_move_window(limiter, clock):
    """Test that denials keep the original reset time."""
    first = limiter.is_allowed("A")
    for _ in range(9):
        limiter.is_allowed("A")
    clock.advance(30_000)
    denied = limiter.is_allowed("A")
    assert denied.allowed is False
    assert denied.reset_time == first.reset_time


def test_identifiers_are_isolated(limiter):
    """Test that one client exhausting its window does not affect another."""
    for _ in range(5):
        assert limiter.is_allowed("A").allowed is True
    other = limiter.is_allowed("B")
    assert other.allowed is True
    assert other.remaining == 9
    for _ in range(5):
        assert limiter.is_allowed("A").allowed is True
    assert limiter.is_allowed("A").allowed is False
    assert limiter.is_allowed("B").allowed is True


def test_window_resets_after_reset_time(limiter, clock):
    """Test that a new window starts once reset_time has passed."""
    first = limiter.is_allowed("A")
    for _ in range(10):
        limiter.is_allowed("A")
    assert limiter.is_allowed("A").allowed is False

    clock.advance(60_000)
    # Still inside the window at exactly reset_time.
    assert limiter.is_allowed("A").allowed is False

    clock.advance(1)
    fresh = limiter.is_allowed("A")
    assert fresh.allowed is True
    assert fresh.remaining == 9
    assert fresh.reset_time == first.reset_time + 60_001


def test_cleanup_removes_stale_windows_only(limiter, clock):
    """Test that cleanup reclaims expired windows."""
    limiter.is_allowed("old")
    clock.advance(30_000)
    limiter.is_allowed("new")
    clock.advance(30_001)
    assert limiter.cleanup() == 1
    assert limiter.get_size() == 1


def test_cleanup_does_not_change_decisions(clock):
    """Test that sweeping or not, an expired window is treated as absent."""
    swept = RateLimiter(window_ms=1000, max_requests=1, clock=clock)
    unswept = RateLimiter(window_ms=1000, max_requests=1, clock=clock)
    try:
        for store in (swept, unswept):
            store.is_allowed("A")
            assert store.is_allowed("A").allowed is False
        clock.advance(1001)
        swept.cleanup()
        assert swept.is_allowed("A") == unswept.is_allowed("A")
    finally:
        swept.destroy()
        unswept.destroy()


def test_destroy_is_idempotent(clock):
    """Test destroy clears entries, stops sweeping, and can be repeated."""
    store = RateLimiter(window_ms=1000, max_requests=1, clock=clock)
    store.is_allowed("A")
    store.destroy()
    store.destroy()
    assert store.sweeping is False
    assert store.get_size() == 0
    assert store.is_allowed("A").allowed is True


def test_rate_limit_headers(limiter, clock):
    """Test the header values derived from a decision."""
    clock.now = 1_700_000_000_123
    result = limiter.is_allowed("A")
    headers = rate_limit_headers(limiter, result)
    assert headers == {
        "X-RateLimit-Limit": "10",
        "X-RateLimit-Remaining": "9",
        "X-RateLimit-Reset": "2023-11-14T22:14:20.123Z",
    }


def test_destroy_while_threads_check_limits(clock):
    """Test that destroy during concurrent is_allowed calls neither raises nor blocks."""
    store = RateLimiter(window_ms=60_000, max_requests=5, clock=clock)
    stop = threading.Event()
    errors = []

    def _worker(worker_id):
        try:
            while not stop.is_set():
                store.is_allowed(f"ip:10.0.0.{worker_id}")
                store.get_size()
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    destroyer = threading.Thread(target=store.destroy)
    destroyer.start()
    destroyer.join(timeout=5)
    stop.set()
    for thread in threads:
        thread.join(timeout=5)

    assert not destroyer.is_alive()
    assert not any(thread.is_alive() for thread in threads)
    assert errors == []
    assert store.sweeping is False
