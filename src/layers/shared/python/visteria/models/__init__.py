"""Pydantic models for Visteria entities."""

from visteria.models.base import BaseModel, CamelModel, utc_now
from visteria.models.reports import (
    ProjectSummary,
    ProjectTotals,
    SiteDetail,
    SiteSummary,
    VisitorDetail,
)
from visteria.models.visitor import (
    MAX_VISITS,
    TrackVisitRequest,
    VisitEntry,
    VisitorRecord,
)

__all__ = [
    "BaseModel",
    "CamelModel",
    "utc_now",
    "MAX_VISITS",
    "TrackVisitRequest",
    "VisitEntry",
    "VisitorRecord",
    "ProjectSummary",
    "ProjectTotals",
    "SiteDetail",
    "SiteSummary",
    "VisitorDetail",
]
