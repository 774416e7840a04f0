# Shared fixtures: fake upstream provider, fake clock, relay app.
# Created: 2026-10-14

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from devflow.api.app import create_app
from devflow.config import Settings
from devflow.security.rate_limiter import RateLimiter


class FakeUpstream:
    """Scripted upstream: yields ``fragments``, optionally failing part-way."""

    def __init__(
        self,
        fragments=("Hello ", "world"),
        *,
        fail_at: int | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.fragments = list(fragments)
        self.fail_at = fail_at
        self.error = error or RuntimeError("upstream exploded")
        self.delay = delay
        self.calls: list[str] = []
        self.yielded = 0
        self.streams_closed = 0
        self.aclosed = False

    async def stream_reply(self, prompt: str):
        self.calls.append(prompt)
        try:
            for i, fragment in enumerate(self.fragments):
                if self.fail_at == i:
                    raise self.error
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.yielded += 1
                yield fragment
            if self.fail_at is not None and self.fail_at >= len(self.fragments):
                raise self.error
        finally:
            self.streams_closed += 1

    async def aclose(self) -> None:
        self.aclosed = True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings():
    return Settings(groq_api_key="test-key", _env_file=None)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(settings, clock):
    return RateLimiter(limit=settings.rate_limit_max, window=settings.rate_limit_window, clock=clock)


@pytest.fixture
def app(settings, upstream, limiter):
    return create_app(settings, upstream=upstream, limiter=limiter)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_upstream():
    """Factory for scripted upstreams: ``make_upstream(["a", "b"], fail_at=1)``."""
    return FakeUpstream


@pytest.fixture
def make_client(settings, limiter):
    """Build a TestClient around a custom upstream and/or settings."""

    def _make(upstream=None, *, settings_override=None, limiter_override=None, **client_kwargs):
        app = create_app(
            settings_override or settings,
            upstream=upstream or FakeUpstream(),
            limiter=limiter_override if limiter_override is not None else limiter,
        )
        return TestClient(app, **client_kwargs)

    return _make
