"""Tests for TrackingService."""

from datetime import datetime, timedelta, timezone

from visteria.models.visitor import TrackVisitRequest
from visteria.services.report_service import ReportService
from visteria.services.tracking_service import TrackingService
from visteria.utils.fingerprint import ClientInfo, visitor_hash

NOW = datetime(2026, 10, 18, 12, 30, tzinfo=timezone.utc)


def _request(**fields) -> TrackVisitRequest:
    body = {"siteId": "blog", "url": "https://blog.example.com/"}
    body.update(fields)
    return TrackVisitRequest.model_validate(body)


class TestTrackVisit:
    """Tests for track_visit."""

    def test_returns_fingerprint(self, visitor_repo):
        service = TrackingService(visitor_repo)
        client = ClientInfo(ip="1.2.3.4", user_agent="UA-A")

        fingerprint = service.track_visit(_request(), client, now=NOW)

        assert fingerprint == visitor_hash("blog", "1.2.3.4", "UA-A")
        assert visitor_repo.get("blog", fingerprint) is not None

    def test_defaults(self, visitor_repo):
        service = TrackingService(visitor_repo)
        client = ClientInfo(ip="1.2.3.4", user_agent="Header-UA")

        fingerprint = service.track_visit(_request(), client, now=NOW)
        record = visitor_repo.get("blog", fingerprint)

        assert record.site_name == "blog"
        assert record.site_url is None
        assert record.last_user_agent == "Header-UA"
        assert record.visits[0].visited_at == NOW
        assert record.visits[0].referrer == ""

    def test_body_values_win(self, visitor_repo):
        service = TrackingService(visitor_repo)
        client = ClientInfo(ip="1.2.3.4", user_agent="Header-UA")
        visited_at = NOW - timedelta(minutes=5)

        fingerprint = service.track_visit(
            _request(
                siteName="My Blog",
                siteUrl="https://blog.example.com",
                referrer="https://search.example.com",
                userAgent="Body-UA",
                visitedAt=visited_at.isoformat(),
            ),
            client,
            now=NOW,
        )
        record = visitor_repo.get("blog", fingerprint)

        # The fingerprint still comes from the header user agent
        assert fingerprint == visitor_hash("blog", "1.2.3.4", "Header-UA")
        assert record.site_name == "My Blog"
        assert record.site_url == "https://blog.example.com"
        assert record.last_user_agent == "Body-UA"
        assert record.visits[0].visited_at == visited_at
        assert record.visits[0].referrer == "https://search.example.com"
        assert record.last_seen_at == NOW

    def test_invalid_visited_at_uses_server_time(self, visitor_repo):
        service = TrackingService(visitor_repo)

        fingerprint = service.track_visit(
            _request(visitedAt="garbage"),
            ClientInfo(ip="1.2.3.4", user_agent="UA"),
            now=NOW,
        )

        assert visitor_repo.get("blog", fingerprint).visits[0].visited_at == NOW

    def test_two_agents_two_visitors(self, visitor_repo):
        """Same IP with two user agents yields two visitor records."""
        tracking = TrackingService(visitor_repo)
        reports = ReportService(visitor_repo)
        agent_a = ClientInfo(ip="1.2.3.4", user_agent="UA-A")
        agent_b = ClientInfo(ip="1.2.3.4", user_agent="UA-B")

        tracking.track_visit(_request(url="/one"), agent_a, now=NOW)
        tracking.track_visit(_request(url="/two"), agent_a, now=NOW)
        tracking.track_visit(_request(url="/one"), agent_b, now=NOW)

        records = visitor_repo.list_by_site("blog")
        assert sorted(r.visit_count for r in records) == [1, 2]

        [blog] = reports.list_projects(now=NOW)
        assert blog.unique_visitors == 2
        assert blog.total_visits == 3
        assert blog.today_visits == 3
