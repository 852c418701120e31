"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might load settings so
the real .env files never leak into tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_ADMIN_AUTH_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "admin-key-123,admin-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import Headers

from weanime.adapters.rate_limit.profiles import build_rate_limiters
from weanime.core.app_factory import create_app
from weanime.core.config import RateLimitSettings

ADMIN_HEADERS = {"X-Admin-Key": "admin-key-123"}


class FakeClock:
    """Deterministic clock injected into limiters via ``clock=``."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeRequest:
    """Minimal request exposing case-insensitive headers, like Starlette's."""

    def __init__(self, headers: dict[str, str] | None = None) -> None:
        self.headers = Headers(headers or {})


def request_from(ip: str | None = None, header: str = "X-Forwarded-For") -> FakeRequest:
    return FakeRequest({header: ip} if ip else {})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiters(clock: FakeClock):
    """Limiters for every profile, built from default settings with a fake clock."""
    return build_rate_limiters(RateLimitSettings(), clock=clock)


@pytest.fixture
def app(rate_limiters):
    return create_app(rate_limiters=rate_limiters)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
