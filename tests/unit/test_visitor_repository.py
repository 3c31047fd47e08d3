"""Tests for VisitorRepository against a mocked DynamoDB table."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from visteria.models.visitor import MAX_REFERRER_LENGTH, MAX_URL_LENGTH, MAX_VISITS, VisitEntry
from visteria.repositories.visitor import (
    MAX_APPEND_ATTEMPTS,
    SIZE_EVICTION_BATCH,
    VisitorRepository,
)
from visteria.utils.exceptions import ConflictError

T0 = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _visit(url: str, at: datetime = T0) -> VisitEntry:
    return VisitEntry(url=url, referrer="", visited_at=at)


def _record(repo, visit, visitor_hash="v1", site_name="Blog", site_url=None, user_agent="UA", now=T0):
    repo.record_visit(
        site_id="blog",
        visitor_hash=visitor_hash,
        visit=visit,
        site_name=site_name,
        site_url=site_url,
        user_agent=user_agent,
        now=now,
    )


def _seed_full_log(table, visitor_hash: str, size: int) -> None:
    table.put_item(Item={
        "PK": "SITE#blog",
        "SK": f"VISITOR#{visitor_hash}",
        "siteId": "blog",
        "visitorHash": visitor_hash,
        "siteName": "Blog",
        "firstSeenAt": T0.isoformat(),
        "lastSeenAt": T0.isoformat(),
        "lastUserAgent": "UA",
        "visits": [
            {"url": f"/seed/{i}", "referrer": "", "visitedAt": T0.isoformat()}
            for i in range(size)
        ],
    })


class SerializedTable:
    """Table wrapper that makes each single-item call atomic.

    Stands in for DynamoDB's per-item atomicity when the in-memory mock is
    driven from several threads.
    """

    def __init__(self, table):
        self._table = table
        self._lock = threading.Lock()

    def update_item(self, **kwargs):
        with self._lock:
            return self._table.update_item(**kwargs)

    def __getattr__(self, name):
        return getattr(self._table, name)


class TestRecordVisit:
    """Tests for the visitor upsert."""

    def test_creates_record(self, visitor_repo):
        _record(visitor_repo, _visit("/home"), site_url="https://blog.example.com")

        record = visitor_repo.get("blog", "v1")

        assert record is not None
        assert record.site_id == "blog"
        assert record.visitor_hash == "v1"
        assert record.site_name == "Blog"
        assert record.site_url == "https://blog.example.com"
        assert record.first_seen_at == T0
        assert record.last_seen_at == T0
        assert record.last_user_agent == "UA"
        assert [v.url for v in record.visits] == ["/home"]

    def test_updates_existing_record(self, visitor_repo):
        later = T0 + timedelta(hours=1)
        _record(visitor_repo, _visit("/a"), site_url="https://blog.example.com")
        _record(
            visitor_repo,
            _visit("/b", later),
            site_name="Renamed",
            site_url=None,
            user_agent="UA2",
            now=later,
        )

        record = visitor_repo.get("blog", "v1")

        assert record.first_seen_at == T0
        assert record.last_seen_at == later
        assert record.site_name == "Renamed"
        # An empty site URL never clears a known one
        assert record.site_url == "https://blog.example.com"
        assert record.last_user_agent == "UA2"
        assert [v.url for v in record.visits] == ["/a", "/b"]

    def test_one_record_per_fingerprint(self, visitor_repo):
        _record(visitor_repo, _visit("/a"), visitor_hash="v1")
        _record(visitor_repo, _visit("/b"), visitor_hash="v1")
        _record(visitor_repo, _visit("/c"), visitor_hash="v2")

        records = visitor_repo.list_by_site("blog")

        assert sorted((r.visitor_hash, r.visit_count) for r in records) == [("v1", 2), ("v2", 1)]

    def test_full_log_evicts_oldest(self, visitor_repo, dynamodb_table):
        _seed_full_log(dynamodb_table, "v1", MAX_VISITS)

        for i in range(3):
            _record(visitor_repo, _visit(f"/new/{i}"))

        record = visitor_repo.get("blog", "v1")

        assert record.visit_count == MAX_VISITS
        assert record.visits[0].url == "/seed/3"
        assert [v.url for v in record.visits[-3:]] == ["/new/0", "/new/1", "/new/2"]

    def test_small_cap(self, store):
        repo = VisitorRepository(store, max_visits=2)

        for i in range(5):
            _record(repo, _visit(f"/p{i}"))

        assert [v.url for v in repo.get("blog", "v1").visits] == ["/p3", "/p4"]

    def test_storage_error_propagates(self):
        table = MagicMock()
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
            "UpdateItem",
        )
        repo = VisitorRepository(MagicMock(table=table))

        with pytest.raises(ClientError):
            _record(repo, _visit("/a"))

        assert table.update_item.call_count == 1

    def test_gives_up_after_bounded_attempts(self):
        table = MagicMock()
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ConditionalCheckFailedException", "Message": "full"}},
            "UpdateItem",
        )
        repo = VisitorRepository(MagicMock(table=table))

        with pytest.raises(ConflictError):
            _record(repo, _visit("/a"))

        # One append and one eviction per attempt
        assert table.update_item.call_count == MAX_APPEND_ATTEMPTS * 2


class TestItemSizeLimit:
    """Long visit entries must not push the item past DynamoDB's size limit."""

    def test_long_entries_keep_being_recorded(self, visitor_repo):
        referrer = "https://ref.example.com/" + "r" * (MAX_REFERRER_LENGTH - 30)
        urls = [f"/{i:04d}/" + "u" * (MAX_URL_LENGTH - 10) for i in range(300)]

        for url in urls:
            visitor_repo.record_visit(
                site_id="blog",
                visitor_hash="v1",
                visit=VisitEntry(url=url, referrer=referrer, visited_at=T0),
                site_name="Blog",
                site_url=None,
                user_agent="UA",
                now=T0,
            )

        record = visitor_repo.get("blog", "v1")

        # Oldest entries were evicted; the newest are kept in order
        assert SIZE_EVICTION_BATCH < record.visit_count < len(urls)
        assert [v.url for v in record.visits] == urls[-record.visit_count:]

    def test_size_error_evicts_a_batch_and_retries(self):
        table = MagicMock()
        table.update_item.side_effect = [
            ClientError(
                {"Error": {
                    "Code": "ValidationException",
                    "Message": "Item size to update has exceeded the maximum allowed size",
                }},
                "UpdateItem",
            ),
            {},
            {},
        ]
        repo = VisitorRepository(MagicMock(table=table))

        _record(repo, _visit("/a"))

        assert table.update_item.call_count == 3
        eviction = table.update_item.call_args_list[1].kwargs
        assert eviction["UpdateExpression"].startswith("REMOVE #visits[0], #visits[1]")
        assert eviction["UpdateExpression"].count("#visits[") == SIZE_EVICTION_BATCH
        assert eviction["ExpressionAttributeValues"] == {":n": SIZE_EVICTION_BATCH}

    def test_other_validation_errors_propagate(self):
        table = MagicMock()
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ValidationException", "Message": "Invalid UpdateExpression"}},
            "UpdateItem",
        )
        repo = VisitorRepository(MagicMock(table=table))

        with pytest.raises(ClientError):
            _record(repo, _visit("/a"))

        assert table.update_item.call_count == 1


class TestConcurrentAppends:
    """Concurrent visits from one visitor must not lose appends."""

    def test_no_lost_appends(self, dynamodb_table):
        repo = VisitorRepository(MagicMock(table=SerializedTable(dynamodb_table)))

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(_record, repo, _visit(f"/p{i}")) for i in range(25)]
            for future in futures:
                future.result()

        record = repo.get("blog", "v1")

        assert record.visit_count == 25
        assert sorted(v.url for v in record.visits) == sorted(f"/p{i}" for i in range(25))

    def test_cap_holds_under_contention(self, dynamodb_table):
        _seed_full_log(dynamodb_table, "v1", 10)
        repo = VisitorRepository(MagicMock(table=SerializedTable(dynamodb_table)), max_visits=10)

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(_record, repo, _visit(f"/new/{i}")) for i in range(12)]
            for future in futures:
                future.result()

        record = repo.get("blog", "v1")

        assert record.visit_count == 10
        assert all(v.url.startswith("/new/") for v in record.visits)


class TestReads:
    """Tests for get, list_by_site and scan_all."""

    def test_get_missing(self, visitor_repo):
        assert visitor_repo.get("blog", "nobody") is None

    def test_list_by_site_is_scoped(self, visitor_repo):
        _record(visitor_repo, _visit("/a"), visitor_hash="v1")
        visitor_repo.record_visit(
            site_id="shop",
            visitor_hash="v1",
            visit=_visit("/cart"),
            site_name="Shop",
            site_url=None,
            user_agent="UA",
            now=T0,
        )

        assert [r.site_id for r in visitor_repo.list_by_site("blog")] == ["blog"]
        assert visitor_repo.list_by_site("nothing") == []

    def test_scan_all_skips_other_items(self, visitor_repo, dynamodb_table):
        _record(visitor_repo, _visit("/a"), visitor_hash="v1")
        _record(visitor_repo, _visit("/b"), visitor_hash="v2")
        dynamodb_table.put_item(Item={"PK": "META", "SK": "SCHEMA", "version": 1})

        records = list(visitor_repo.scan_all())

        assert sorted(r.visitor_hash for r in records) == ["v1", "v2"]

    def test_scan_all_follows_pages(self):
        table = MagicMock()
        item = {
            "PK": "SITE#blog",
            "SK": "VISITOR#v1",
            "siteId": "blog",
            "visitorHash": "v1",
            "firstSeenAt": T0.isoformat(),
            "lastSeenAt": T0.isoformat(),
            "visits": [],
        }
        table.scan.side_effect = [
            {"Items": [item], "LastEvaluatedKey": {"PK": "SITE#blog", "SK": "VISITOR#v1"}},
            {"Items": [dict(item, SK="VISITOR#v2", visitorHash="v2")]},
        ]
        repo = VisitorRepository(MagicMock(table=table))

        records = list(repo.scan_all())

        assert [r.visitor_hash for r in records] == ["v1", "v2"]
        assert table.scan.call_args_list[1].kwargs["ExclusiveStartKey"] == {
            "PK": "SITE#blog",
            "SK": "VISITOR#v1",
        }
