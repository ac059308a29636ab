import threading
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request, Response, status

from .logging_config import get_logger
from .sweeper import DEFAULT_SWEEP_INTERVAL_MS, PeriodicSweeper
from .timeutils import iso_timestamp, now_ms

_LOG = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass
class RateLimitEntry:
    count: int
    reset_time: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int


class RateLimiter:
    """Fixed-window request counter keyed by client identifier.

    One ``(window_ms, max_requests)`` pair applies to every identifier; use a
    separate instance for a different limit.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: PeriodicSweeper | None = PeriodicSweeper(
            self.cleanup, sweep_interval_ms, name="rate-limit-sweeper"
        )

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and self._sweeper.running

    def is_allowed(self, identifier: str) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)
            if entry is None or entry.reset_time < now:
                reset_time = now + self.window_ms
                self._entries[identifier] = RateLimitEntry(count=1, reset_time=reset_time)
                return RateLimitResult(True, self.max_requests - 1, reset_time)
            # Denied requests do not consume a slot.
            if entry.count >= self.max_requests:
                return RateLimitResult(False, 0, entry.reset_time)
            entry.count += 1
            return RateLimitResult(True, self.max_requests - entry.count, entry.reset_time)

    def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if entry.reset_time < now]
            for key in stale:
                del self._entries[key]
        if stale:
            _LOG.debug("Rate limit sweep removed stale windows", extra={"removed": len(stale)})
        return len(stale)

    def get_size(self) -> int:
        with self._lock:
            return len(self._entries)

    def destroy(self) -> None:
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.stop()
        with self._lock:
            self._entries.clear()


def rate_limit_key(request: Request) -> str:
    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def rate_limit_headers(limiter: RateLimiter, result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limiter.max_requests),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": iso_timestamp(result.reset_time),
    }


def enforce_rate_limit(request: Request, response: Response) -> None:
    """Per-route limit for the AI endpoints, on top of the global middleware."""
    limiter: RateLimiter = request.app.state.resources.ai_rate_limiter
    result = limiter.is_allowed(rate_limit_key(request))
    headers = rate_limit_headers(limiter, result)
    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=RATE_LIMIT_MESSAGE,
            headers=headers,
        )
    response.headers.update(headers)
