"""Tests for the Starlette IP filter middleware."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ipfilter.config import FilterConfiguration, FilterSettings
from ipfilter.errors import ConfigurationError
from ipfilter.middleware import IPFilterMiddleware


def _app(**middleware_kwargs) -> FastAPI:
    app = FastAPI()
    app.add_middleware(IPFilterMiddleware, **middleware_kwargs)

    @app.get("/")
    async def index():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "up"}

    return app


class TestIPFilterMiddleware:
    def test_allowed_ip_passes(self):
        cfg = FilterConfiguration.from_options(["1.2.3.4"], mode="allow")
        client = TestClient(_app(filter_config=cfg))
        resp = client.get("/", headers={"X-Forwarded-For": "1.2.3.4"})
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_denied_ip_gets_configured_response(self):
        cfg = FilterConfiguration.from_options(
            ["1.2.3.4"], mode="allow", error_code=403, error_message="Go away"
        )
        client = TestClient(_app(filter_config=cfg))
        resp = client.get("/", headers={"X-Forwarded-For": "6.6.6.6"})
        assert resp.status_code == 403
        assert resp.text == "Go away"

    def test_default_deny_response(self):
        cfg = FilterConfiguration.from_options(["6.6.6.6"])
        client = TestClient(_app(filter_config=cfg))
        resp = client.get("/", headers={"CF-Connecting-IP": "6.6.6.6"})
        assert resp.status_code == 401
        assert resp.text == "Unauthorized"

    def test_excluded_route_passes(self):
        cfg = FilterConfiguration.from_options([], mode="allow", excluding=[r"^/health"])
        client = TestClient(_app(filter_config=cfg))
        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 401

    def test_unresolvable_peer_in_allow_mode(self):
        # TestClient reports a non-IP peer host
        cfg = FilterConfiguration.from_options(["127.0.0.1"], mode="allow")
        client = TestClient(_app(filter_config=cfg))
        assert client.get("/").status_code == 401

    def test_log_sink(self):
        messages = []
        cfg = FilterConfiguration.from_options(["1.2.3.4"], mode="allow")
        client = TestClient(_app(filter_config=cfg, log_sink=messages.append))
        client.get("/", headers={"X-Forwarded-For": "1.2.3.4"})
        assert messages == ["Access granted to IP address: 1.2.3.4"]

    def test_reads_settings(self):
        settings = FilterSettings(mode="allow", ips=["10.0.0.0/8"], cidr=True)
        with patch("ipfilter.middleware.config", settings):
            client = TestClient(_app())
            assert client.get("/", headers={"X-Forwarded-For": "10.1.2.3"}).status_code == 200
            assert client.get("/", headers={"X-Forwarded-For": "11.1.2.3"}).status_code == 401

    def test_disabled_by_settings(self):
        settings = FilterSettings(enabled=False, mode="allow", ips=[])
        with patch("ipfilter.middleware.config", settings):
            client = TestClient(_app())
            assert client.get("/").status_code == 200

    def test_malformed_config_fails_on_first_request(self):
        cfg = FilterConfiguration.from_options(["not-a-cidr/24"], cidr=True)
        client = TestClient(_app(filter_config=cfg))
        with pytest.raises(ConfigurationError):
            client.get("/")
