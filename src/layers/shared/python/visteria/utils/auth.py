"""Shared API key authentication."""

import hmac

import structlog

from visteria.utils.exceptions import ConfigurationError, UnauthorizedError
from visteria.utils.request import get_header

logger = structlog.get_logger()

API_KEY_HEADER = "x-api-key"


def parse_api_keys(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated key list, dropping blanks."""
    return tuple(key.strip() for key in (raw or "").split(",") if key.strip())


def require_api_key(event: dict, api_keys: tuple[str, ...]) -> None:
    """Ensure the request carries one of the configured API keys.

    Args:
        event: API Gateway event dict.
        api_keys: Keys accepted by this deployment.

    Raises:
        ConfigurationError: If no keys are configured at all.
        UnauthorizedError: If the key is missing or unknown.
    """
    if not api_keys:
        logger.error("No API keys configured")
        raise ConfigurationError("Server misconfigured: missing API key.")

    provided = (get_header(event, API_KEY_HEADER) or "").strip()
    if not provided or not any(
        hmac.compare_digest(provided.encode(), key.encode()) for key in api_keys
    ):
        logger.warning("API key rejected", path=event.get("path"), key_present=bool(provided))
        raise UnauthorizedError()
