"""Tests for client key derivation."""

from __future__ import annotations

import logging

import pytest

from weanime.adapters.rate_limit.keys import (
    UNKNOWN_CLIENT,
    anonymize_key,
    get_client_ip,
    hash_key,
)

from tests.conftest import FakeRequest


class TestGetClientIp:

    def test_uses_first_forwarded_for_entry(self) -> None:
        request = FakeRequest({"X-Forwarded-For": " 1.2.3.4 , 10.0.0.1, 10.0.0.2"})
        assert get_client_ip(request) == "1.2.3.4"

    def test_forwarded_for_wins_over_real_ip(self) -> None:
        request = FakeRequest({"X-Forwarded-For": "1.2.3.4", "X-Real-IP": "5.6.7.8"})
        assert get_client_ip(request) == "1.2.3.4"

    def test_falls_back_to_real_ip(self) -> None:
        request = FakeRequest({"X-Real-IP": "5.6.7.8", "X-Vercel-Forwarded-For": "9.9.9.9"})
        assert get_client_ip(request) == "5.6.7.8"

    def test_falls_back_to_vercel_header(self) -> None:
        request = FakeRequest({"X-Vercel-Forwarded-For": "9.9.9.9"})
        assert get_client_ip(request) == "9.9.9.9"

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"X-Forwarded-For": ""},
            {"X-Forwarded-For": " , 10.0.0.1"},
            {"X-Real-IP": "   "},
        ],
    )
    def test_missing_or_malformed_headers_map_to_unknown(self, headers: dict) -> None:
        assert get_client_ip(FakeRequest(headers)) == UNKNOWN_CLIENT

    def test_request_without_headers_attribute(self) -> None:
        assert get_client_ip(object()) == UNKNOWN_CLIENT

    def test_fallback_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="weanime.adapters.rate_limit.keys"):
            get_client_ip(FakeRequest())

        assert any(r.getMessage() == "rate_limit.key_fallback" for r in caplog.records)


def test_hash_key_is_stable_and_short() -> None:
    assert hash_key("1.2.3.4") == hash_key("1.2.3.4")
    assert hash_key("1.2.3.4") != hash_key("1.2.3.5")
    assert len(hash_key("1.2.3.4")) == 16
    assert "1.2.3.4" not in hash_key("1.2.3.4")


def test_anonymize_key_truncates() -> None:
    assert anonymize_key("203.0.113.77") == "203.0.11..."
