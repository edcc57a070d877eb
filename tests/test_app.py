import json
import logging

import pytest

from portal import config
from portal.logging import JsonFormatter


class TestAppBasics:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "frame-ancestors 'none'" in resp.headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in resp.headers

    def test_metrics(self, client):
        client.get("/health")
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "portal_http_requests_total" in resp.text

    def test_unknown_route_envelope(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "data": None, "error": "Not Found"}

    def test_validation_envelope(self, client):
        resp = client.post("/api/admin/login", json={"username": "reviewer"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Validation error: password: Field required"

    def test_dev_cors(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["access-control-allow-origin"] == "*"


class TestDatabaseUrl:
    def _clear(self, monkeypatch):
        for name in (
            "DATABASE_URL",
            "DATABASE_SERVER_FULL",
            "DATABASE_SERVER_HOST",
            "DATABASE_SERVER_PORT",
            "DATABASE_SERVER_USER",
            "DATABASE_PASSWORD",
            "DATABASE_DB",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_explicit_url_wins(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv("DATABASE_URL", "sqlite:///x.db")
        monkeypatch.setenv("DATABASE_SERVER_HOST", "db")
        assert config._resolve_database_url() == "sqlite:///x.db"

    def test_from_components(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv("DATABASE_SERVER_HOST", "db")
        monkeypatch.setenv("DATABASE_SERVER_USER", "portal")
        monkeypatch.setenv("DATABASE_PASSWORD", "secret")
        monkeypatch.setenv("DATABASE_DB", "portal")
        assert (
            config._resolve_database_url()
            == "postgresql+psycopg://portal:secret@db:5432/portal"
        )

    def test_development_default(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv("ENVIRONMENT", "development")
        assert config._resolve_database_url().startswith("postgresql+psycopg://localhost")

    def test_production_requires_url(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv("ENVIRONMENT", "production")
        with pytest.raises(ValueError):
            config._resolve_database_url()


class TestJsonFormatter:
    def test_includes_extras(self):
        record = logging.LogRecord(
            "portal.test", logging.INFO, __file__, 1, "hello %s", ("world",), None
        )
        record.request_id = "abc"
        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "portal.test"
        assert payload["request_id"] == "abc"


class TestLauncher:
    def test_serves_on_configured_bind(self, monkeypatch):
        from portal import __main__ as launcher

        calls = []
        monkeypatch.setattr(
            launcher.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs))
        )
        launcher.main()
        assert calls == [
            (
                "portal.main:app",
                {"host": launcher.settings.host, "port": launcher.settings.port},
            )
        ]
