from __future__ import annotations

from typing import Any, Callable, Optional

import pytest
from fastapi.testclient import TestClient

from prompt_proxy.common.settings import Settings
from prompt_proxy.serve.fastapi_app import create_app
from prompt_proxy.serve.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Stands in for UpstreamClient; records prompts and returns canned text."""

    def __init__(self, text: str = "Hello test", error: Optional[Exception] = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[str] = []

    def generate(self, prompt: str) -> str:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_client(clock: FakeClock, upstream: FakeUpstream) -> Callable[..., TestClient]:
    def _make(
        upstream_override: Any = None,
        limiter: Optional[RateLimiter] = None,
        **overrides: Any,
    ) -> TestClient:
        fields: dict[str, Any] = {"api_key": "sk-test"}
        fields.update(overrides)
        settings = Settings(**fields)
        app = create_app(
            settings,
            rate_limiter=limiter or RateLimiter(clock=clock),
            upstream=upstream_override if upstream_override is not None else upstream,
        )
        return TestClient(app)

    return _make
