"""Shared fixtures: a controllable clock and isolated stores/apps."""

import pytest
from fastapi.testclient import TestClient

from completions_api.cache import TTLCache
from completions_api.config_loader import Settings
from completions_api.rate_limit import RateLimiter


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    store = TTLCache(default_ttl_ms=300_000, clock=clock)
    yield store
    store.destroy()


@pytest.fixture
def limiter(clock):
    store = RateLimiter(window_ms=60_000, max_requests=10, clock=clock)
    yield store
    store.destroy()


@pytest.fixture
def settings():
    return Settings(environment="test", mock_ai_delay_ms=0)


@pytest.fixture
def make_client(monkeypatch):
    """Build a TestClient around a fresh app so every test gets its own stores."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("PROVIDER_OPENAI_API_KEY", raising=False)

    from completions_api.main import create_app

    clients = []

    def _make(settings: Settings) -> TestClient:
        client = TestClient(create_app(settings))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
