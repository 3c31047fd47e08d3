"""Visitor repository for fingerprint-based visit tracking.

Uses DynamoDB UpdateItem with if_not_exists for atomic upserts, so
first-seen fields are only written on insert, and list_append guarded by a
size condition so the visit log never grows past its cap. When the item
would outgrow DynamoDB's 400 KB item limit first, the oldest visits are
evicted in batches instead.
"""

from collections.abc import Iterator
from datetime import datetime
from typing import Any

import structlog
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from visteria.models.visitor import (
    MAX_VISITS,
    VISITOR_SK_PREFIX,
    VisitEntry,
    VisitorRecord,
    visitor_key,
    visitor_pk,
)
from visteria.storage import DynamoStore
from visteria.utils.exceptions import ConflictError

logger = structlog.get_logger()

# Append/evict rounds before giving up under contention
MAX_APPEND_ATTEMPTS = 20

# Oldest visits dropped at once when the item hits the size limit
SIZE_EVICTION_BATCH = 25


def _is_condition_failure(e: ClientError) -> bool:
    return e.response["Error"]["Code"] == "ConditionalCheckFailedException"


def _is_item_too_large(e: ClientError) -> bool:
    error = e.response["Error"]
    return (
        error["Code"] == "ValidationException"
        and "maximum allowed size" in error.get("Message", "")
    )


class VisitorRepository:
    """Repository for VisitorRecord items in DynamoDB."""

    def __init__(self, store: DynamoStore, max_visits: int = MAX_VISITS):
        """Initialize repository.

        Args:
            store: Storage client owning the table handle.
            max_visits: Visit log cap per visitor.
        """
        self.store = store
        self.max_visits = max_visits

    @property
    def table(self):
        return self.store.table

    def get(self, site_id: str, visitor_hash: str) -> VisitorRecord | None:
        """Get a visitor by site and fingerprint.

        Args:
            site_id: Site identifier.
            visitor_hash: Visitor fingerprint.

        Returns:
            VisitorRecord or None if not found.
        """
        try:
            response = self.table.get_item(
                Key=visitor_key(site_id, visitor_hash),
            )
        except ClientError as e:
            logger.error("DynamoDB get_item failed", error=str(e), site_id=site_id)
            raise

        item = response.get("Item")
        if not item:
            return None
        return VisitorRecord.from_dynamodb(item)

    def record_visit(
        self,
        site_id: str,
        visitor_hash: str,
        visit: VisitEntry,
        site_name: str,
        site_url: str | None,
        user_agent: str,
        now: datetime,
    ) -> None:
        """Create or update a visitor and append one visit to its log.

        Each attempt is a single conditional UpdateItem. When the log is full
        the oldest entry is evicted with a second conditional update and the
        append is tried again. When the item would exceed DynamoDB's size
        limit, a batch of the oldest entries is evicted the same way. No step
        reads the item first, so concurrent visits from the same visitor
        cannot drop an append.

        Args:
            site_id: Site identifier.
            visitor_hash: Visitor fingerprint.
            visit: Visit to append.
            site_name: Display name, overwritten on every visit.
            site_url: Site URL, written only when non-empty.
            user_agent: Latest user agent.
            now: Server time used for first/last seen.

        Raises:
            ConflictError: If no room could be made within the attempt budget.
        """
        key = visitor_key(site_id, visitor_hash)
        now_iso = now.isoformat()

        set_parts = [
            "#siteId = if_not_exists(#siteId, :siteId)",
            "#visitorHash = if_not_exists(#visitorHash, :visitorHash)",
            "#firstSeenAt = if_not_exists(#firstSeenAt, :now)",
            # Always update last-touch fields
            "#siteName = :siteName",
            "#lastSeenAt = :now",
            "#lastUserAgent = :ua",
            "#visits = list_append(if_not_exists(#visits, :empty), :visit)",
        ]
        expr_names = {
            "#siteId": "siteId",
            "#visitorHash": "visitorHash",
            "#firstSeenAt": "firstSeenAt",
            "#siteName": "siteName",
            "#lastSeenAt": "lastSeenAt",
            "#lastUserAgent": "lastUserAgent",
            "#visits": "visits",
        }
        expr_values: dict[str, Any] = {
            ":siteId": site_id,
            ":visitorHash": visitor_hash,
            ":now": now_iso,
            ":siteName": site_name,
            ":ua": user_agent,
            ":empty": [],
            ":visit": [visit.to_json_dict()],
            ":cap": self.max_visits,
        }

        # Never overwrite a known site URL with an empty one
        if site_url:
            set_parts.append("#siteUrl = :siteUrl")
            expr_names["#siteUrl"] = "siteUrl"
            expr_values[":siteUrl"] = site_url

        for attempt in range(1, MAX_APPEND_ATTEMPTS + 1):
            try:
                self.table.update_item(
                    Key=key,
                    UpdateExpression=f"SET {', '.join(set_parts)}",
                    ConditionExpression="attribute_not_exists(#visits) OR size(#visits) < :cap",
                    ExpressionAttributeNames=expr_names,
                    ExpressionAttributeValues=expr_values,
                )
                logger.debug(
                    "Visit recorded",
                    site_id=site_id,
                    visitor_hash=visitor_hash,
                    attempt=attempt,
                )
                return
            except ClientError as e:
                if _is_condition_failure(e):
                    self._evict_oldest(key)
                elif _is_item_too_large(e):
                    logger.info(
                        "Visitor item at size limit, evicting oldest visits",
                        site_id=site_id,
                        visitor_hash=visitor_hash,
                    )
                    self._evict_for_size(key)
                else:
                    logger.error(
                        "DynamoDB update_item failed",
                        error=str(e),
                        site_id=site_id,
                        visitor_hash=visitor_hash,
                    )
                    raise

        logger.warning(
            "Visit log stayed full under contention",
            site_id=site_id,
            visitor_hash=visitor_hash,
            attempts=MAX_APPEND_ATTEMPTS,
        )
        raise ConflictError("Could not append visit", conflict_type="visit_log_full")

    def _evict_oldest(self, key: dict[str, str]) -> None:
        """Drop the oldest visit, only while the log is still at its cap."""
        self._remove_oldest(
            key,
            count=1,
            condition="size(#visits) >= :n",
            threshold=self.max_visits,
        )

    def _evict_for_size(self, key: dict[str, str]) -> None:
        """Drop a batch of the oldest visits to make room in the item.

        Only runs while the log holds more than a batch; a shorter log means
        another writer already shrank it.
        """
        self._remove_oldest(
            key,
            count=SIZE_EVICTION_BATCH,
            condition="size(#visits) > :n",
            threshold=SIZE_EVICTION_BATCH,
        )

    def _remove_oldest(self, key: dict[str, str], count: int, condition: str, threshold: int) -> None:
        paths = ", ".join(f"#visits[{i}]" for i in range(count))
        try:
            self.table.update_item(
                Key=key,
                UpdateExpression=f"REMOVE {paths}",
                ConditionExpression=condition,
                ExpressionAttributeNames={"#visits": "visits"},
                ExpressionAttributeValues={":n": threshold},
            )
        except ClientError as e:
            # Another writer already made room
            if _is_condition_failure(e):
                return
            logger.error("DynamoDB eviction failed", error=str(e), sk=key["SK"])
            raise

    def list_by_site(self, site_id: str) -> list[VisitorRecord]:
        """List every visitor of a site.

        Args:
            site_id: Site identifier.

        Returns:
            Visitor records in key order.
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(visitor_pk(site_id))
            & Key("SK").begins_with(VISITOR_SK_PREFIX),
        }
        records: list[VisitorRecord] = []

        try:
            while True:
                response = self.table.query(**kwargs)
                records.extend(
                    VisitorRecord.from_dynamodb(item) for item in response.get("Items", [])
                )
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return records
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error("DynamoDB query failed", error=str(e), site_id=site_id)
            raise

    def scan_all(self) -> Iterator[VisitorRecord]:
        """Yield every visitor record in the table.

        Full table scan; fine for small deployments only.
        """
        kwargs: dict[str, Any] = {
            "FilterExpression": Attr("SK").begins_with(VISITOR_SK_PREFIX),
        }

        try:
            while True:
                response = self.table.scan(**kwargs)
                for item in response.get("Items", []):
                    yield VisitorRecord.from_dynamodb(item)
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error("DynamoDB scan failed", error=str(e))
            raise
