"""Utility functions and helpers."""

from visteria.utils.auth import parse_api_keys, require_api_key
from visteria.utils.exceptions import (
    ConfigurationError,
    ConflictError,
    UnauthorizedError,
    ValidationError,
    VisteriaError,
)
from visteria.utils.fingerprint import ClientInfo, visitor_hash
from visteria.utils.responses import accepted, error, preflight, success, validation_error

__all__ = [
    # Response helpers
    "success",
    "accepted",
    "preflight",
    "error",
    "validation_error",
    # Auth
    "parse_api_keys",
    "require_api_key",
    # Fingerprinting
    "ClientInfo",
    "visitor_hash",
    # Exceptions
    "VisteriaError",
    "ValidationError",
    "UnauthorizedError",
    "ConfigurationError",
    "ConflictError",
]
