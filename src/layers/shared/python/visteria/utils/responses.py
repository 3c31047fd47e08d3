"""API response helper functions."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel as PydanticBaseModel

# Tracking is embedded on third-party pages, so any origin is allowed by default
DEFAULT_ALLOWED_ORIGIN = "*"


def get_cors_headers(
    allowed_origin: str = DEFAULT_ALLOWED_ORIGIN,
    allowed_methods: str = "GET,POST,OPTIONS",
) -> dict:
    """Get CORS headers for a route."""
    return {
        "Access-Control-Allow-Origin": allowed_origin,
        "Access-Control-Allow-Headers": "Content-Type,x-api-key",
        "Access-Control-Allow-Methods": allowed_methods,
        "Content-Type": "application/json",
    }


CORS_HEADERS = get_cors_headers()


def with_cors(response: dict, allowed_origin: str) -> dict:
    """Return the response with the deployment's allowed origin applied."""
    if allowed_origin == DEFAULT_ALLOWED_ORIGIN:
        return response
    headers = {**(response.get("headers") or {}), "Access-Control-Allow-Origin": allowed_origin}
    return {**response, "headers": headers}


def _json_serializer(obj: Any) -> Any:
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, PydanticBaseModel):
        return obj.model_dump(mode="json", by_alias=True)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _serialize(data: Any) -> str:
    """Serialize data to JSON string."""
    return json.dumps(data, default=_json_serializer)


def success(data: Any, status_code: int = 200) -> dict:
    """Create a successful API response.

    Args:
        data: Response data (dict, list, or Pydantic model).
        status_code: HTTP status code (default 200).

    Returns:
        API Gateway response dict.
    """
    if isinstance(data, PydanticBaseModel):
        body = data.model_dump(mode="json", by_alias=True)
    else:
        body = data

    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": _serialize(body),
    }


def accepted(data: Any) -> dict:
    """Create a 202 Accepted response."""
    return success(data, status_code=202)


def preflight() -> dict:
    """Create the 200 response for a CORS preflight request."""
    return {
        "statusCode": 200,
        "headers": CORS_HEADERS,
        "body": "",
    }


def error(
    message: str,
    status_code: int = 500,
    error_code: str | None = None,
    details: dict | None = None,
) -> dict:
    """Create an error API response.

    Args:
        message: Error message.
        status_code: HTTP status code.
        error_code: Machine-readable error code.
        details: Additional error details.

    Returns:
        API Gateway response dict.
    """
    body: dict[str, Any] = {
        "error": True,
        "message": message,
    }

    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details

    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": _serialize(body),
    }


def validation_error(errors: list[dict]) -> dict:
    """Create a validation error response.

    Args:
        errors: List of validation errors with field and message.

    Returns:
        API Gateway response dict.
    """
    return error(
        message="Validation failed",
        status_code=400,
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


def unauthorized(message: str = "Unauthorized") -> dict:
    """Create a 401 Unauthorized response."""
    return error(
        message=message,
        status_code=401,
        error_code="UNAUTHORIZED",
    )


def method_not_allowed() -> dict:
    """Create a 405 Method Not Allowed response."""
    return error("Method not allowed", 405, error_code="METHOD_NOT_ALLOWED")


def from_exception(exc: Any) -> dict:
    """Render a VisteriaError with its own status code and error code."""
    return error(
        exc.message,
        exc.status_code,
        error_code=exc.error_code,
        details=exc.details or None,
    )
