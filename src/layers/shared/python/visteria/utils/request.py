"""Helpers for reading API Gateway proxy events."""

import base64
import binascii
import json
from typing import Any

from visteria.utils.exceptions import ValidationError

# Request bodies above this size are rejected before parsing
MAX_BODY_BYTES = 32 * 1024


def get_header(event: dict, name: str) -> str | None:
    """Look up a request header case-insensitively."""
    headers = event.get("headers", {}) or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_client_ip(event: dict) -> str:
    """Extract client IP from API Gateway event.

    Handles X-Forwarded-For header for requests behind CloudFront/ALB.

    Args:
        event: API Gateway event dict.

    Returns:
        Client IP address string, empty when unknown.
    """
    request_context = event.get("requestContext", {}) or {}
    identity = request_context.get("identity", {}) or {}

    # Check X-Forwarded-For first (may have multiple IPs from proxies)
    forwarded_for = get_header(event, "X-Forwarded-For") or ""
    first = forwarded_for.split(",")[0].strip()
    if first:
        return first

    # Fall back to source IP from API Gateway
    return identity.get("sourceIp") or ""


def get_user_agent(event: dict) -> str:
    return get_header(event, "User-Agent") or ""


def _body_error(message: str) -> ValidationError:
    return ValidationError(errors=[{"field": "body", "message": message}])


def parse_json_body(event: dict, max_bytes: int = MAX_BODY_BYTES) -> Any:
    """Decode the request body as JSON.

    Args:
        event: API Gateway event dict.
        max_bytes: Largest accepted body, measured after base64 decoding.

    Raises:
        ValidationError: If the body is too large or not valid JSON.
    """
    raw = event.get("body") or "{}"
    try:
        if event.get("isBase64Encoded"):
            data = base64.b64decode(raw, validate=True)
        else:
            data = raw.encode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise _body_error("Invalid body encoding") from e

    if len(data) > max_bytes:
        raise _body_error(f"Request body exceeds {max_bytes} bytes")

    try:
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise _body_error("Invalid JSON body") from e
