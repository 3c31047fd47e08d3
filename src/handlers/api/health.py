"""Liveness check handler (no authentication, no storage access)."""

from typing import Any

from visteria.config import Settings
from visteria.container import get_container
from visteria.utils.responses import method_not_allowed, preflight, success, with_cors


def handler(event: dict[str, Any], context: Any) -> dict:
    """Lambda entry point."""
    return handle(event, get_container().settings)


def handle(event: dict[str, Any], settings: Settings) -> dict:
    """Handle health checks.

    Routes:
        GET /health
    """
    http_method = event.get("httpMethod", "").upper()

    if http_method == "OPTIONS":
        response = preflight()
    elif http_method != "GET":
        response = method_not_allowed()
    else:
        response = success({"ok": True})
    return with_cors(response, settings.cors_allowed_origin)
