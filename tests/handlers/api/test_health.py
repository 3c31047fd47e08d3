"""Tests for the health endpoint (GET /health)."""

import json
from dataclasses import replace

import pytest


class TestHealth:
    """Tests for GET /health."""

    def test_ok_without_api_key(self, api_gateway_event):
        from api.health import handler

        response = handler(api_gateway_event(path="/health", api_key=None), None)

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == {"ok": True}

    def test_preflight(self, settings, api_gateway_event):
        from api.health import handle

        response = handle(api_gateway_event(method="OPTIONS", path="/health"), settings)

        assert response["statusCode"] == 200
        assert response["body"] == ""

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_method_not_allowed(self, settings, api_gateway_event, method):
        from api.health import handle

        response = handle(api_gateway_event(method=method, path="/health"), settings)

        assert response["statusCode"] == 405

    def test_configured_cors_origin(self, settings, api_gateway_event):
        from api.health import handle

        response = handle(
            api_gateway_event(path="/health"),
            replace(settings, cors_allowed_origin="https://dash.example.com"),
        )

        assert response["headers"]["Access-Control-Allow-Origin"] == "https://dash.example.com"
