"""Tracking agent for Python-rendered sites and scripts.

Mirrors the browser snippet: it builds a visit payload, suppresses repeats
of the same URL inside a short window, and never lets a transport failure
reach the caller.
"""

import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

logger = structlog.get_logger()

# Same URL tracked again within this window is dropped
DUPLICATE_WINDOW_SECONDS = 2.0

TRACK_PATH = "/api/visits/track"


class VisitTracker:
    """Sends page views to a Visteria API."""

    def __init__(
        self,
        base_url: str,
        site_id: str | None = None,
        api_key: str | None = None,
        site_name: str | None = None,
        site_url: str | None = None,
        consent: bool = True,
        http_client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the tracker.

        Args:
            base_url: API base URL, with or without trailing slash.
            site_id: Site identifier; defaults to each URL's hostname.
            api_key: Sent as ``x-api-key`` for private deployments.
            site_name: Display name stored with the visitor.
            site_url: Canonical site URL stored with the visitor.
            consent: When False nothing is sent.
            http_client: Client to reuse; one is created when omitted.
            clock: Monotonic time source for duplicate suppression.
        """
        self.base_url = (base_url or "").strip().rstrip("/")
        self.site_id = (site_id or "").strip()
        self.api_key = (api_key or "").strip()
        self.site_name = site_name
        self.site_url = site_url
        self.consent = consent
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(timeout=10.0)
        self._clock = clock
        self._last_url = ""
        self._last_tracked_at = float("-inf")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{TRACK_PATH}"

    def _should_suppress(self, url: str) -> bool:
        now = self._clock()
        if url == self._last_url and now - self._last_tracked_at < DUPLICATE_WINDOW_SECONDS:
            return True
        self._last_url = url
        self._last_tracked_at = now
        return False

    def build_payload(
        self,
        url: str,
        referrer: str = "",
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """Build the JSON body for one visit."""
        payload: dict[str, Any] = {
            "siteId": self.site_id or urlparse(url).hostname or "",
            "url": url,
            "referrer": referrer or "",
            "visitedAt": datetime.now(timezone.utc).isoformat(),
        }
        if user_agent:
            payload["userAgent"] = user_agent
        if self.site_name:
            payload["siteName"] = self.site_name
        if self.site_url:
            payload["siteUrl"] = self.site_url
        return payload

    def track(
        self,
        url: str,
        referrer: str = "",
        user_agent: str | None = None,
    ) -> bool:
        """Send one page view.

        Args:
            url: Page URL being viewed.
            referrer: Referring URL.
            user_agent: Visitor user agent, forwarded as header and body field.

        Returns:
            True if the API accepted the visit.
        """
        if not self.consent or not self.base_url:
            return False

        payload = self.build_payload(url, referrer, user_agent)
        if not payload["siteId"]:
            return False
        if self._should_suppress(url):
            logger.debug("Duplicate visit suppressed", url=url)
            return False

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        if user_agent:
            headers["User-Agent"] = user_agent

        try:
            response = self.client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Visit tracking request failed", url=url, error=str(e))
            return False

        if response.status_code != 202:
            logger.warning(
                "Visit tracking rejected",
                url=url,
                status_code=response.status_code,
                body=response.text[:200],
            )
            return False
        return True

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "VisitTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
