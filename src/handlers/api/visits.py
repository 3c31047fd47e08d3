"""Visit tracking API handler."""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from visteria.container import Container, get_container
from visteria.models.visitor import TrackVisitRequest
from visteria.utils.auth import require_api_key
from visteria.utils.exceptions import ConfigurationError, UnauthorizedError, ValidationError
from visteria.utils.fingerprint import ClientInfo
from visteria.utils.request import parse_json_body
from visteria.utils.responses import (
    accepted,
    error,
    from_exception,
    method_not_allowed,
    preflight,
    unauthorized,
    validation_error,
    with_cors,
)

logger = structlog.get_logger()


def handler(event: dict[str, Any], context: Any) -> dict:
    """Lambda entry point."""
    return handle(event, get_container())


def handle(event: dict[str, Any], container: Container) -> dict:
    """Handle visit tracking requests.

    Routes:
        POST    /api/visits/track
        OPTIONS /api/visits/track
    """
    return with_cors(_route(event, container), container.settings.cors_allowed_origin)


def _route(event: dict[str, Any], container: Container) -> dict:
    http_method = event.get("httpMethod", "").upper()

    if http_method == "OPTIONS":
        return preflight()
    if http_method != "POST":
        return method_not_allowed()

    try:
        if container.settings.track_requires_api_key:
            require_api_key(event, container.settings.api_keys)

        return track_visit(container, event)

    except ValidationError as e:
        return validation_error(e.errors)
    except UnauthorizedError as e:
        return unauthorized(e.message)
    except ConfigurationError as e:
        return from_exception(e)
    except Exception as e:
        logger.exception("Track handler error", error=str(e))
        return error("Internal server error", 500)


def track_visit(container: Container, event: dict) -> dict:
    """Record a page view and acknowledge it."""
    body = parse_json_body(event)
    if not isinstance(body, dict):
        raise ValidationError(errors=[{"field": "body", "message": "Request body must be a JSON object"}])

    try:
        request = TrackVisitRequest.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e

    container.tracking.track_visit(request, ClientInfo.from_event(event))
    return accepted({"ok": True})
