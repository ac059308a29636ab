import threading
from dataclasses import dataclass
from typing import Any, Callable

from .logging_config import get_logger
from .sweeper import DEFAULT_SWEEP_INTERVAL_MS, PeriodicSweeper
from .timeutils import now_ms

_LOG = get_logger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000

# Pass as ``default`` to tell a cached None apart from a miss.
MISSING: Any = object()


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    created_at: int
    expires_at: int


def _percent_half_up(part: int, whole: int) -> float:
    """Percentage to two decimals, ties rounded away from zero."""
    hundredths = (part * 20_000 + whole) // (2 * whole)
    return hundredths / 100


class TTLCache:
    """Unbounded in-memory cache with per-entry expiry and hit/miss stats.

    Expired entries are dropped lazily by ``get``/``has`` and periodically by a
    background sweep. ``size()`` is the raw entry count, expired entries
    included, until one of those paths removes them.
    """

    def __init__(
        self,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.default_ttl_ms = default_ttl_ms
        self.hits = 0
        self.misses = 0
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: PeriodicSweeper | None = PeriodicSweeper(
            self.cleanup, sweep_interval_ms, name="cache-sweeper"
        )

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and self._sweeper.running

    def set(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        # ttl_ms=0 falls back to the default, same as leaving it out.
        now = self._clock()
        entry = CacheEntry(data=value, created_at=now, expires_at=now + (ttl_ms or self.default_ttl_ms))
        with self._lock:
            self._store[key] = entry

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self.misses += 1
                return default
            if self._clock() > entry.expires_at:
                del self._store[key]
                self.misses += 1
                return default
            self.hits += 1
            return entry.data

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                del self._store[key]
                return False
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self.hits = 0
            self.misses = 0

    def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._store.items() if entry.expires_at < now]
            for key in expired:
                del self._store[key]
        if expired:
            _LOG.debug("Cache sweep removed expired entries", extra={"removed": len(expired)})
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            now = self._clock()
            lookups = self.hits + self.misses
            hit_rate = 0 if lookups == 0 else _percent_half_up(self.hits, lookups)
            live = [entry.created_at for entry in self._store.values() if now <= entry.expires_at]
            return {
                "size": len(self._store),
                "maxSize": None,
                "defaultTTL": self.default_ttl_ms,
                "hits": self.hits,
                "misses": self.misses,
                "hitRate": hit_rate,
                "oldestEntry": min(live) if live else None,
                "newestEntry": max(live) if live else None,
            }

    def destroy(self) -> None:
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.stop()
        self.clear()
