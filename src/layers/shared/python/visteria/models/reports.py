"""Read-side models returned by the dashboard endpoints."""

from datetime import datetime

from pydantic import Field

from visteria.models.base import CamelModel
from visteria.models.visitor import VisitEntry


class ProjectSummary(CamelModel):
    """Per-site rollup computed on read."""

    site_id: str
    site_name: str | None = None
    total_visits: int = 0
    unique_visitors: int = 0
    today_visits: int = 0


class ProjectTotals(CamelModel):
    """Totals across every tracked site."""

    total_sites: int = 0
    total_visits: int = 0
    today_visits: int = 0

    @classmethod
    def from_projects(cls, projects: list[ProjectSummary]) -> "ProjectTotals":
        return cls(
            total_sites=len(projects),
            total_visits=sum(p.total_visits for p in projects),
            today_visits=sum(p.today_visits for p in projects),
        )


class SiteSummary(CamelModel):
    """Summary header for the site detail view."""

    site_id: str
    site_name: str
    site_url: str | None = None
    total_visits: int = 0
    unique_visitors: int = 0
    returning_visits: int = 0
    avg_visits_per_visitor: float = 0.0
    return_rate: int = 0

    @classmethod
    def build(
        cls,
        site_id: str,
        site_name: str,
        site_url: str | None,
        total_visits: int,
        unique_visitors: int,
    ) -> "SiteSummary":
        """Build a summary and derive the engagement metrics.

        Visits beyond the first per visitor count as returning visits.
        """
        returning = max(total_visits - unique_visitors, 0)
        avg = round(total_visits / unique_visitors, 1) if unique_visitors else 0.0
        rate = round(returning / total_visits * 100) if total_visits else 0
        return cls(
            site_id=site_id,
            site_name=site_name,
            site_url=site_url,
            total_visits=total_visits,
            unique_visitors=unique_visitors,
            returning_visits=returning,
            avg_visits_per_visitor=avg,
            return_rate=rate,
        )


class VisitorDetail(CamelModel):
    """One visitor in the site detail view, visits most-recent-first."""

    visitor_hash: str
    first_seen_at: datetime
    last_seen_at: datetime
    visit_count: int
    visits: list[VisitEntry] = Field(default_factory=list)


class SiteDetail(CamelModel):
    """Site detail response: summary (None when no visitors) plus visitors."""

    site: SiteSummary | None = None
    visitors: list[VisitorDetail] = Field(default_factory=list)
