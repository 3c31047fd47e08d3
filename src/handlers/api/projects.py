"""Projects API handler."""

from typing import Any

import structlog

from visteria.container import Container, get_container
from visteria.models.reports import ProjectTotals
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
    """Handle project list requests.

    Routes:
        GET     /api/projects
        OPTIONS /api/projects
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
        return list_projects(container)

    except UnauthorizedError as e:
        return unauthorized(e.message)
    except ConfigurationError as e:
        return from_exception(e)
    except Exception as e:
        logger.exception("Projects handler error", error=str(e))
        return error("Internal server error", 500)


def list_projects(container: Container) -> dict:
    """List per-site rollups, busiest site first."""
    projects = container.reports.list_projects()
    return success({
        "projects": [p.to_json_dict() for p in projects],
        "totals": ProjectTotals.from_projects(projects).to_json_dict(),
    })
