"""Visitor model for fingerprint-based visit tracking.

One record per (site, visitor) pair. The record carries its own visit log,
capped at MAX_VISITS entries with the oldest evicted first.

DynamoDB keys:
    PK: SITE#{site_id}
    SK: VISITOR#{visitor_hash}
"""

from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

from pydantic import Field, field_validator

from visteria.models.base import BaseModel, CamelModel, ensure_utc

# Visit log cap per visitor record
MAX_VISITS = 1000

VISITOR_SK_PREFIX = "VISITOR#"

# Per-field caps keep one visit entry small next to the 400 KB item limit
MAX_URL_LENGTH = 2048
MAX_REFERRER_LENGTH = 2048


def visitor_pk(site_id: str) -> str:
    """Partition key for every visitor of a site."""
    return f"SITE#{site_id}"


def visitor_sk(visitor_hash: str) -> str:
    """Sort key for one visitor."""
    return f"{VISITOR_SK_PREFIX}{visitor_hash}"


def visitor_key(site_id: str, visitor_hash: str) -> dict[str, str]:
    """Primary key of one visitor item."""
    return {"PK": visitor_pk(site_id), "SK": visitor_sk(visitor_hash)}


class VisitEntry(CamelModel):
    """A single page view, embedded in a visitor's visit log."""

    url: str
    referrer: str = ""
    visited_at: datetime

    @field_validator("visited_at")
    @classmethod
    def normalize_visited_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class VisitorRecord(BaseModel):
    """Visitor record keyed by site and fingerprint.

    Created implicitly by the first tracked visit and updated by every
    later visit with the same fingerprint. Never deleted.
    """

    site_id: str
    visitor_hash: str
    site_name: str | None = None
    site_url: str | None = None

    # first_seen_at is set on insert only
    first_seen_at: datetime
    last_seen_at: datetime
    last_user_agent: str = ""

    visits: list[VisitEntry] = Field(default_factory=list)

    @field_validator("first_seen_at", "last_seen_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def visit_count(self) -> int:
        return len(self.visits)

    def count_visits_between(self, start: datetime, end: datetime) -> int:
        """Count visits with start <= visited_at < end."""
        return sum(1 for visit in self.visits if start <= visit.visited_at < end)

    def recent_visits(self, limit: int | None = None) -> list[VisitEntry]:
        """Visits most-recent-first, optionally capped to the newest ``limit``."""
        visits = self.visits[-limit:] if limit else self.visits
        return list(reversed(visits))


def _coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


def parse_visited_at(value: Any) -> datetime | None:
    """Parse a client-reported visit time.

    Accepts ISO-8601 strings (a trailing ``Z`` included), RFC 2822 dates
    such as HTTP headers carry, and datetimes.
    Returns None for anything else so the caller can fall back to now.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        return ensure_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError):
        return None


class TrackVisitRequest(CamelModel):
    """Request model for recording a page view."""

    site_id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1, max_length=MAX_URL_LENGTH)
    site_name: str | None = None
    site_url: str | None = None
    referrer: str = Field("", max_length=MAX_REFERRER_LENGTH)
    user_agent: str | None = None
    visited_at: datetime | None = None

    @field_validator("site_id", "url", "site_name", "site_url", "user_agent", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> str | None:
        """Coerce scalar values to trimmed strings."""
        return _coerce_text(v)

    @field_validator("referrer", mode="before")
    @classmethod
    def coerce_referrer(cls, v: Any) -> str:
        return _coerce_text(v) or ""

    @field_validator("visited_at", mode="before")
    @classmethod
    def lenient_visited_at(cls, v: Any) -> datetime | None:
        """Unparseable timestamps are dropped rather than rejected."""
        return parse_visited_at(v)
