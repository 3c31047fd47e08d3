"""Site detail API handler."""

from typing import Any
from urllib.parse import unquote

import structlog

from visteria.container import Container, get_container
from visteria.utils.auth import require_api_key
from visteria.utils.exceptions import ConfigurationError, UnauthorizedError
from visteria.utils.responses import (
    error,
    from_exception,
    method_not_allowed,
    preflight,
    success,
    unauthorized,
    with_cors,
)

logger = structlog.get_logger()


def handler(event: dict[str, Any], context: Any) -> dict:
    """Lambda entry point."""
    return handle(event, get_container())


def handle(event: dict[str, Any], container: Container) -> dict:
    """Handle site detail requests.

    Routes:
        GET     /api/sites/{siteId}
        OPTIONS /api/sites/{siteId}
    """
    return with_cors(_route(event, container), container.settings.cors_allowed_origin)


def _route(event: dict[str, Any], container: Container) -> dict:
    http_method = event.get("httpMethod", "").upper()

    if http_method == "OPTIONS":
        return preflight()
    if http_method != "GET":
        return method_not_allowed()

    try:
        require_api_key(event, container.settings.api_keys)

        path_params = event.get("pathParameters", {}) or {}
        site_id = unquote(path_params.get("siteId") or "").strip()
        if not site_id:
            return error("Missing siteId parameter", 400)

        return get_site(container, site_id)

    except UnauthorizedError as e:
        return unauthorized(e.message)
    except ConfigurationError as e:
        return from_exception(e)
    except Exception as e:
        logger.exception("Site detail handler error", error=str(e))
        return error("Internal server error", 500)


def get_site(container: Container, site_id: str) -> dict:
    """Get a site's summary and visitors."""
    detail = container.reports.get_site_detail(site_id)
    logger.debug("Site detail served", site_id=site_id, visitors=len(detail.visitors))
    return success(detail)
