"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from weanime.core.config import LogSettings, RateLimitSettings, Settings


def test_rate_limit_defaults() -> None:
    cfg = RateLimitSettings()

    assert cfg.enabled is True
    assert cfg.include_headers is True
    assert cfg.sweep_interval_seconds == 60
    assert cfg.suspicious_ttl_seconds == 3600
    assert cfg.whitelist_set == set()
    assert cfg.adaptive_profile_set == {"api", "auth"}


def test_rate_limit_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_BLACKLIST", "6.6.6.6")
    monkeypatch.setenv("RATE_LIMIT_STREAMING_MAX_REQUESTS", "120")

    cfg = RateLimitSettings()

    assert cfg.enabled is False
    assert cfg.blacklist_set == {"6.6.6.6"}
    assert cfg.streaming_max_requests == 120


def test_rejects_non_positive_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_AUTH_MAX_REQUESTS", "0")

    with pytest.raises(ValidationError):
        RateLimitSettings()


def test_settings_compose_nested_groups(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "plain")

    settings = Settings()

    assert isinstance(settings.rate_limit, RateLimitSettings)
    assert isinstance(settings.log, LogSettings)
    assert settings.log.format == "plain"
    assert settings.log.request_id_header == "X-Request-ID"
