import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _cors_allowlist() -> list[str]:
    raw = os.getenv('CORS_ALLOW_ORIGINS')
    if raw is None:
        return ['*']
    origins = [origin.strip() for origin in raw.split(',') if origin.strip()]
    return origins or ['*']


@dataclass
class Settings:
    environment: str = 'development'
    port: int = 3000
    log_level: str = 'INFO'
    cors_allow_origins: tuple[str, ...] = ('*',)
    cache_default_ttl_ms: int = 5 * 60 * 1000
    cache_sweep_interval_ms: int = 60 * 1000
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_max_requests: int = 100
    ai_rate_limit_window_ms: int = 60 * 1000
    ai_rate_limit_max_requests: int = 10
    rate_limit_sweep_interval_ms: int = 60 * 1000
    mock_ai_delay_ms: int = 300
    openai_timeout_seconds: float = 30.0

    @property
    def is_development(self) -> bool:
        return self.environment == 'development'


def load_settings() -> Settings:
    return Settings(
        environment=os.getenv('APP_ENV', 'development'),
        port=_int_env('PORT', 3000),
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        cors_allow_origins=tuple(_cors_allowlist()),
        cache_default_ttl_ms=_int_env('CACHE_DEFAULT_TTL_MS', 5 * 60 * 1000),
        cache_sweep_interval_ms=_int_env('CACHE_SWEEP_INTERVAL_MS', 60 * 1000),
        rate_limit_window_ms=_int_env('RATE_LIMIT_WINDOW_MS', 15 * 60 * 1000),
        rate_limit_max_requests=_int_env('RATE_LIMIT_MAX_REQUESTS', 100),
        ai_rate_limit_window_ms=_int_env('AI_RATE_LIMIT_WINDOW_MS', 60 * 1000),
        ai_rate_limit_max_requests=_int_env('AI_RATE_LIMIT_MAX_REQUESTS', 10),
        rate_limit_sweep_interval_ms=_int_env('RATE_LIMIT_SWEEP_INTERVAL_MS', 60 * 1000),
        mock_ai_delay_ms=_int_env('MOCK_AI_DELAY_MS', 300),
        openai_timeout_seconds=float(os.getenv('OPENAI_TIMEOUT_SECONDS', '30')),
    )
