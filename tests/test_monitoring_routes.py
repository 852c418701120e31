"""Tests for the error report endpoint and its monitoring rate limit."""

import logging

import pytest
from fastapi.testclient import TestClient

from tests.conftest import FakeClock

IP = {"X-Forwarded-For": "198.51.100.7"}


class TestReportError:

    def test_accepts_valid_report(self, client: TestClient) -> None:
        resp = client.post(
            "/v1/monitoring/errors",
            json={"id": "err-1", "message": "Player crashed", "level": "warning"},
            headers=IP,
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Error logged successfully", "id": "err-1"}
        assert resp.headers["X-RateLimit-Limit"] == "100"
        assert resp.headers["X-RateLimit-Remaining"] == "99"

    def test_assigns_id_when_missing(self, client: TestClient) -> None:
        resp = client.post("/v1/monitoring/errors", json={"message": "boom"}, headers=IP)

        assert resp.status_code == 200
        assert resp.json()["id"].startswith("error_")

    def test_missing_message_is_400(self, client: TestClient) -> None:
        resp = client.post("/v1/monitoring/errors", json={"level": "error"}, headers=IP)

        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["code"] == "invalid_error_report"
        assert body["error"]["message"] == "Error message is required"

    def test_non_json_body_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/v1/monitoring/errors",
            content=b"not json",
            headers={**IP, "Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_error_report"

    def test_invalid_reports_still_consume_quota(self, client: TestClient, rate_limiters) -> None:
        client.post("/v1/monitoring/errors", json={}, headers=IP)

        assert rate_limiters.monitoring.get_entry("198.51.100.7").count == 1

    def test_report_is_logged(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="weanime.api.routes.monitoring"):
            client.post(
                "/v1/monitoring/errors",
                json={"message": "Episode list failed", "context": {"component": "EpisodeListing"}},
                headers=IP,
            )

        records = [r for r in caplog.records if r.getMessage() == "monitoring.error_report"]
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert records[0].component == "EpisodeListing"


class TestMonitoringRateLimit:

    def test_101st_report_in_a_minute_is_rejected(self, client: TestClient) -> None:
        for _ in range(100):
            assert client.post("/v1/monitoring/errors", json={"message": "x"}, headers=IP).status_code == 200

        blocked = client.post("/v1/monitoring/errors", json={"message": "x"}, headers=IP)

        assert blocked.status_code == 429
        assert blocked.json()["error"] == "Rate limit exceeded"
        assert blocked.headers["Retry-After"] == "60"
        assert blocked.headers["X-Request-ID"]

    def test_quota_returns_after_the_window(self, client: TestClient, clock: FakeClock) -> None:
        for _ in range(101):
            client.post("/v1/monitoring/errors", json={"message": "x"}, headers=IP)

        clock.advance(61)
        resp = client.post("/v1/monitoring/errors", json={"message": "x"}, headers=IP)

        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == "99"

    def test_other_clients_unaffected(self, client: TestClient) -> None:
        for _ in range(101):
            client.post("/v1/monitoring/errors", json={"message": "x"}, headers=IP)

        resp = client.post(
            "/v1/monitoring/errors",
            json={"message": "x"},
            headers={"X-Forwarded-For": "203.0.113.9"},
        )
        assert resp.status_code == 200
