"""Visit ingestion."""

from datetime import datetime

import structlog

from visteria.models.base import utc_now
from visteria.models.visitor import TrackVisitRequest, VisitEntry
from visteria.repositories.visitor import VisitorRepository
from visteria.utils.fingerprint import ClientInfo, visitor_hash

logger = structlog.get_logger()


class TrackingService:
    """Turns a validated track request into a visitor upsert."""

    def __init__(self, repository: VisitorRepository):
        self.repository = repository

    def track_visit(
        self,
        request: TrackVisitRequest,
        client: ClientInfo,
        now: datetime | None = None,
    ) -> str:
        """Record one page view.

        The fingerprint uses the request's own user agent header; the
        ``userAgent`` reported in the body is only stored as last seen.

        Args:
            request: Validated visit payload.
            client: IP and user agent of the caller.
            now: Server time, injectable for tests.

        Returns:
            The visitor fingerprint the visit was stored under.
        """
        now = now or utc_now()
        site_id = request.site_id
        fingerprint = visitor_hash(site_id, client.ip, client.user_agent)

        visit = VisitEntry(
            url=request.url,
            referrer=request.referrer,
            visited_at=request.visited_at or now,
        )

        self.repository.record_visit(
            site_id=site_id,
            visitor_hash=fingerprint,
            visit=visit,
            site_name=request.site_name or site_id,
            site_url=request.site_url or None,
            user_agent=request.user_agent or client.user_agent,
            now=now,
        )

        logger.info("Visit tracked", site_id=site_id, visitor_hash=fingerprint[:12])
        return fingerprint
