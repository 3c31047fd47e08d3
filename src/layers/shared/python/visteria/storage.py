"""DynamoDB storage client with an explicit lifecycle."""

from typing import Any

import boto3
import structlog
from botocore.exceptions import ClientError

logger = structlog.get_logger()


class DynamoStore:
    """Owns the boto3 resource and table handle for one process.

    The connection is opened lazily on first use and reused afterwards.
    Call ``close()`` (or use the store as a context manager) to release it.
    """

    def __init__(
        self,
        table_name: str,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ):
        """Initialize store.

        Args:
            table_name: DynamoDB table holding visitor records.
            region_name: AWS region.
            endpoint_url: Override endpoint, e.g. DynamoDB Local.
        """
        self.table_name = table_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self._dynamodb = None
        self._table = None

    @classmethod
    def from_settings(cls, settings: Any) -> "DynamoStore":
        return cls(
            table_name=settings.table_name,
            region_name=settings.region_name,
            endpoint_url=settings.endpoint_url,
        )

    @property
    def connected(self) -> bool:
        return self._table is not None

    def connect(self) -> "DynamoStore":
        """Create the DynamoDB resource and table handle if not done yet."""
        if self._table is None:
            kwargs: dict[str, Any] = {}
            if self.region_name:
                kwargs["region_name"] = self.region_name
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            self._dynamodb = boto3.resource("dynamodb", **kwargs)
            self._table = self._dynamodb.Table(self.table_name)
            logger.debug("DynamoDB store connected", table=self.table_name)
        return self

    @property
    def dynamodb(self):
        """Get DynamoDB resource (lazy initialization)."""
        self.connect()
        return self._dynamodb

    @property
    def table(self):
        """Get DynamoDB table (lazy initialization)."""
        self.connect()
        return self._table

    def ensure_table(self) -> None:
        """Create the visitor table if it does not exist.

        The (PK, SK) primary key is what makes (site, visitor) unique.
        """
        client = self.dynamodb.meta.client
        try:
            client.describe_table(TableName=self.table_name)
            return
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise

        table = self.dynamodb.create_table(
            TableName=self.table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        logger.info("DynamoDB table created", table=self.table_name)

    def close(self) -> None:
        """Release the underlying HTTP connections."""
        if self._dynamodb is not None:
            self._dynamodb.meta.client.close()
            logger.debug("DynamoDB store closed", table=self.table_name)
        self._dynamodb = None
        self._table = None

    def __enter__(self) -> "DynamoStore":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
