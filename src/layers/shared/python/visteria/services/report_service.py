"""Read-side rollups for the dashboard.

Everything here is computed on read from the stored visitor records; there
are no pre-aggregated counters.
"""

from datetime import datetime, timedelta

import structlog

from visteria.models.base import ensure_utc, utc_now
from visteria.models.reports import (
    ProjectSummary,
    SiteDetail,
    SiteSummary,
    VisitorDetail,
)
from visteria.repositories.visitor import VisitorRepository

logger = structlog.get_logger()


def utc_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return [midnight, next midnight) of the UTC day containing ``now``."""
    now = ensure_utc(now)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


class ReportService:
    """Project list and site detail queries."""

    def __init__(self, repository: VisitorRepository, site_visits_limit: int = 0):
        """Initialize service.

        Args:
            repository: Visitor repository.
            site_visits_limit: Newest visits returned per visitor in site
                detail; 0 returns the full log.
        """
        self.repository = repository
        self.site_visits_limit = site_visits_limit

    def list_projects(self, now: datetime | None = None) -> list[ProjectSummary]:
        """Roll up every visitor record by site.

        Sorted by total visits, highest first. The site name comes from the
        last record of the site seen in the scan.
        """
        start, end = utc_day_bounds(now or utc_now())
        projects: dict[str, ProjectSummary] = {}

        for record in self.repository.scan_all():
            summary = projects.get(record.site_id)
            if summary is None:
                summary = ProjectSummary(site_id=record.site_id)
                projects[record.site_id] = summary

            summary.site_name = record.site_name
            summary.total_visits += record.visit_count
            summary.unique_visitors += 1
            summary.today_visits += record.count_visits_between(start, end)

        ordered = sorted(projects.values(), key=lambda p: p.total_visits, reverse=True)
        logger.debug("Projects aggregated", sites=len(ordered))
        return ordered

    def get_site_detail(self, site_id: str) -> SiteDetail:
        """Get a site's summary and all of its visitors.

        Visitors are ordered by last seen, newest first.
        """
        records = self.repository.list_by_site(site_id)
        records.sort(key=lambda r: r.last_seen_at, reverse=True)

        if not records:
            return SiteDetail(site=None, visitors=[])

        site_url = next((r.site_url for r in records if r.site_url), None)
        summary = SiteSummary.build(
            site_id=site_id,
            site_name=records[0].site_name or site_id,
            site_url=site_url,
            total_visits=sum(r.visit_count for r in records),
            unique_visitors=len(records),
        )

        visitors = [
            VisitorDetail(
                visitor_hash=r.visitor_hash,
                first_seen_at=r.first_seen_at,
                last_seen_at=r.last_seen_at,
                visit_count=r.visit_count,
                visits=r.recent_visits(self.site_visits_limit or None),
            )
            for r in records
        ]
        return SiteDetail(site=summary, visitors=visitors)
