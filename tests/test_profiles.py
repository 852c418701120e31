"""Tests for named rate limit profiles."""

import logging

import pytest
from pydantic import ValidationError

from weanime.adapters.rate_limit.adaptive import AdaptiveRateLimiter
from weanime.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from weanime.adapters.rate_limit.keys import hash_key
from weanime.adapters.rate_limit.profiles import (
    DEFAULT_PROFILES,
    PROFILE_NAMES,
    RateLimitProfile,
    build_limiter,
    build_rate_limiters,
    profiles_from_settings,
)
from weanime.core.config import RateLimitSettings

from tests.conftest import FakeClock, request_from


@pytest.mark.parametrize(
    ("name", "window", "max_requests"),
    [
        ("api", 900, 100),
        ("auth", 900, 5),
        ("search", 60, 30),
        ("streaming", 60, 60),
        ("monitoring", 60, 100),
    ],
)
def test_default_profile_limits(name: str, window: float, max_requests: int) -> None:
    profile = DEFAULT_PROFILES[name]
    assert profile.window_seconds == window
    assert profile.max_requests == max_requests


def test_settings_defaults_match_default_profiles() -> None:
    resolved = profiles_from_settings(RateLimitSettings())

    for name in PROFILE_NAMES:
        assert resolved[name].window_seconds == DEFAULT_PROFILES[name].window_seconds
        assert resolved[name].max_requests == DEFAULT_PROFILES[name].max_requests


def test_settings_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_AUTH_MAX_REQUESTS", "10")
    monkeypatch.setenv("RATE_LIMIT_SEARCH_WINDOW_SECONDS", "30")
    monkeypatch.setenv("RATE_LIMIT_WHITELIST", "10.0.0.1, 10.0.0.2")
    monkeypatch.setenv("RATE_LIMIT_ADAPTIVE_PROFILES", "search")

    resolved = profiles_from_settings(RateLimitSettings())

    assert resolved["auth"].max_requests == 10
    assert resolved["search"].window_seconds == 30
    assert resolved["api"].whitelist == frozenset({"10.0.0.1", "10.0.0.2"})
    assert resolved["search"].adaptive is True
    assert resolved["api"].adaptive is False


def test_profile_is_immutable() -> None:
    profile = RateLimitProfile(name="x", window_seconds=1, max_requests=1)
    with pytest.raises(ValidationError):
        profile.max_requests = 2  # type: ignore[misc]


def test_profile_rejects_invalid_values() -> None:
    with pytest.raises(ValidationError):
        RateLimitProfile(name="x", window_seconds=0, max_requests=1)


def test_build_limiter_picks_adaptive_variant() -> None:
    plain = build_limiter(RateLimitProfile(name="a", window_seconds=60, max_requests=1))
    adaptive = build_limiter(
        RateLimitProfile(name="b", window_seconds=60, max_requests=1, adaptive=True),
        suspicious_ttl_seconds=5,
    )

    assert type(plain) is InMemoryFixedWindowRateLimiter
    assert isinstance(adaptive, AdaptiveRateLimiter)


def test_default_adaptive_profiles(rate_limiters) -> None:
    assert isinstance(rate_limiters.api, AdaptiveRateLimiter)
    assert isinstance(rate_limiters.auth, AdaptiveRateLimiter)
    assert not isinstance(rate_limiters.search, AdaptiveRateLimiter)


def test_profiles_have_independent_quotas(rate_limiters) -> None:
    request = request_from("1.2.3.4")

    for _ in range(5):
        assert rate_limiters.auth.check_limit(request).allowed is True
    assert rate_limiters.auth.check_limit(request).allowed is False

    search = rate_limiters.search.check_limit(request)
    api = rate_limiters.api.check_limit(request)
    assert search.allowed is True
    assert search.remaining == 29
    assert api.allowed is True
    assert api.remaining == 99


def test_container_lookup(rate_limiters) -> None:
    assert rate_limiters.get("streaming") is rate_limiters.streaming
    assert rate_limiters.get("nope") is None
    assert [name for name, _ in rate_limiters.items()] == list(PROFILE_NAMES)
    assert len(list(rate_limiters)) == 5


def test_limit_reached_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    limiters = build_rate_limiters(RateLimitSettings(), clock=FakeClock())
    request = request_from("1.2.3.4")

    with caplog.at_level(logging.WARNING, logger="weanime.adapters.rate_limit.profiles"):
        for _ in range(6):
            limiters.auth.check_limit(request)

    exceeded = [r for r in caplog.records if r.getMessage() == "rate_limit.exceeded"]
    assert len(exceeded) == 1
    assert exceeded[0].profile == "auth"
    assert exceeded[0].key_hash == hash_key("1.2.3.4")
    assert "1.2.3.4" not in str(exceeded[0].__dict__)
