"""Deployment settings read from the environment."""

import os
from dataclasses import dataclass, field
from typing import Mapping

from visteria.utils.auth import parse_api_keys
from visteria.utils.responses import DEFAULT_ALLOWED_ORIGIN

DEFAULT_TABLE_NAME = "visteria-dev"
DEFAULT_REGION = "us-east-1"
DEFAULT_PORT = 8787

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    Built once at process start; handlers never read the environment
    themselves.
    """

    table_name: str = DEFAULT_TABLE_NAME
    region_name: str = DEFAULT_REGION
    endpoint_url: str | None = None
    api_keys: tuple[str, ...] = field(default_factory=tuple)
    track_requires_api_key: bool = False
    site_visits_limit: int = 0
    port: int = DEFAULT_PORT
    cors_allowed_origin: str = DEFAULT_ALLOWED_ORIGIN

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Load settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Raises:
            ValueError: If a numeric setting is not an integer.
        """
        env = os.environ if environ is None else environ
        raw_keys = (
            env.get("VISTERIA_API_KEYS")
            or env.get("VISTERIA_API_KEY")
            or env.get("API_KEY")
        )
        return cls(
            table_name=env.get("TABLE_NAME") or DEFAULT_TABLE_NAME,
            region_name=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            endpoint_url=env.get("DYNAMODB_ENDPOINT_URL") or None,
            api_keys=parse_api_keys(raw_keys),
            track_requires_api_key=_flag(env.get("TRACK_REQUIRE_API_KEY")),
            site_visits_limit=max(int(env.get("SITE_VISITS_LIMIT") or 0), 0),
            port=int(env.get("PORT") or DEFAULT_PORT),
            cors_allowed_origin=env.get("CORS_ALLOWED_ORIGIN") or DEFAULT_ALLOWED_ORIGIN,
        )
