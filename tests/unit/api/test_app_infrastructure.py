"""
Name: Application Wiring Tests (health, metrics, middleware, error handlers)

Responsibilities:
  - /health, /readyz, /metrics contracts
  - X-Request-Id propagation and security headers
  - Body limit (413) and rate limit (429) middlewares
  - Typed service errors -> RFC 7807 responses
"""

import pytest
from fastapi.testclient import TestClient

from darksphere.api.main import create_app
from darksphere.container import get_validate_key_use_case
from darksphere.crosscutting.config import get_settings
from darksphere.crosscutting.exceptions import DatabaseError, ServiceUnavailableError
from darksphere.crosscutting.rate_limit import reset_rate_limiter

pytestmark = pytest.mark.unit


def _rebuild_settings(monkeypatch, **env):
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    get_settings.cache_clear()
    reset_rate_limiter()


class _Failing:
    def __init__(self, exc):
        self._exc = exc

    def execute(self, key):
        raise self._exc


class TestProbes:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["db"] == "connected"
        assert {c["name"] for c in body["caches"]} == {"users", "posts", "announcements"}
        assert body["request_id"] == response.headers["X-Request-Id"]

    def test_readyz(self, client):
        assert client.get("/readyz").json()["ok"] is True

    def test_metrics_are_public_by_default(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "darksphere_requests_total" in response.text

    def test_metrics_can_require_admin(self, monkeypatch, member_headers):
        _rebuild_settings(monkeypatch, METRICS_REQUIRE_AUTH="true")
        client = TestClient(create_app())

        assert client.get("/metrics").status_code == 401
        assert client.get("/metrics", headers=member_headers).status_code == 403


class TestHeaders:
    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-Id": "trace-123"})
        assert response.headers["X-Request-Id"] == "trace-123"

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Content-Security-Policy" in response.headers


class TestBodyLimit:
    def test_oversized_body_is_rejected(self, monkeypatch):
        _rebuild_settings(monkeypatch, MAX_BODY_BYTES="64")
        client = TestClient(create_app())

        response = client.post("/validate-key", json={"key": "K" * 120})

        assert response.status_code == 413
        assert response.json()["code"] == "PAYLOAD_TOO_LARGE"


class TestRateLimit:
    def test_sensitive_paths_have_a_smaller_bucket(self, monkeypatch):
        _rebuild_settings(monkeypatch, RATE_LIMIT_RPS="0.001", RATE_LIMIT_BURST="4")
        client = TestClient(create_app())

        first = client.post("/validate-key", json={"key": "ANY-KEY-1"})
        second = client.post("/validate-key", json={"key": "ANY-KEY-1"})

        assert first.status_code == 404
        assert second.status_code == 429
        assert second.json()["code"] == "RATE_LIMITED"
        assert int(second.headers["Retry-After"]) >= 1

    def test_probes_are_not_limited(self, monkeypatch):
        _rebuild_settings(monkeypatch, RATE_LIMIT_RPS="0.001", RATE_LIMIT_BURST="1")
        client = TestClient(create_app())

        statuses = {client.get("/health").status_code for _ in range(5)}

        assert statuses == {200}


class TestErrorHandlers:
    @pytest.mark.parametrize(
        "exc, status, code",
        [
            (DatabaseError("connection refused"), 503, "DATABASE_ERROR"),
            (ServiceUnavailableError("pool exhausted"), 503, "SERVICE_UNAVAILABLE"),
        ],
    )
    def test_typed_errors(self, exc, status, code):
        app = create_app()
        app.app.dependency_overrides[get_validate_key_use_case] = lambda: _Failing(exc)
        client = TestClient(app)

        response = client.post("/validate-key", json={"key": "ANY-KEY-1"})

        assert response.status_code == status
        assert response.json()["code"] == code
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_unexpected_error_is_500(self):
        app = create_app()
        app.app.dependency_overrides[get_validate_key_use_case] = lambda: _Failing(
            RuntimeError("boom")
        )
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/validate-key", json={"key": "ANY-KEY-1"})

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
