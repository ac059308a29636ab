import threading
from dataclasses import dataclass, field

from .ai_service import AIService, build_ai_service
from .cache import TTLCache
from .config_loader import Settings
from .logging_config import get_logger
from .rate_limit import RateLimiter

_LOG = get_logger(__name__)


@dataclass
class AppResources:
    """Stores shared by every request, created with the app and destroyed once at shutdown."""

    cache: TTLCache
    rate_limiter: RateLimiter
    ai_rate_limiter: RateLimiter
    ai_service: AIService
    _closed: bool = field(default=False, init=False)
    _close_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> 'AppResources':
        cache = TTLCache(
            default_ttl_ms=settings.cache_default_ttl_ms,
            sweep_interval_ms=settings.cache_sweep_interval_ms,
        )
        rate_limiter = RateLimiter(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max_requests,
            sweep_interval_ms=settings.rate_limit_sweep_interval_ms,
        )
        ai_rate_limiter = RateLimiter(
            window_ms=settings.ai_rate_limit_window_ms,
            max_requests=settings.ai_rate_limit_max_requests,
            sweep_interval_ms=settings.rate_limit_sweep_interval_ms,
        )
        ai_service = build_ai_service(
            cache,
            mock_delay_ms=settings.mock_ai_delay_ms,
            timeout_seconds=settings.openai_timeout_seconds,
        )
        _LOG.info('Shared stores created')
        return cls(cache, rate_limiter, ai_rate_limiter, ai_service)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self.rate_limiter.destroy()
        self.ai_rate_limiter.destroy()
        self.cache.destroy()
        _LOG.info('Shared stores destroyed')
