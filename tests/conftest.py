"""Pytest configuration and fixtures."""

import json
import os
from datetime import datetime, timezone

import pytest

# Set environment variables before imports
os.environ["TABLE_NAME"] = "visteria-test"
os.environ["VISTERIA_API_KEYS"] = "test-key, second-key"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

TABLE_NAME = "visteria-test"
API_KEY = "test-key"


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName=TABLE_NAME,
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

        yield table


@pytest.fixture
def settings():
    """Settings matching the mocked table."""
    from visteria.config import Settings

    return Settings(
        table_name=TABLE_NAME,
        region_name="us-east-1",
        api_keys=("test-key", "second-key"),
    )


@pytest.fixture
def store(dynamodb_table, settings):
    """DynamoStore bound to the mocked table."""
    from visteria.storage import DynamoStore

    store = DynamoStore.from_settings(settings)
    yield store
    store.close()


@pytest.fixture
def visitor_repo(store):
    """Visitor repository on the mocked table."""
    from visteria.repositories.visitor import VisitorRepository

    return VisitorRepository(store)


@pytest.fixture
def container(store, settings):
    """Container wired to the mocked table."""
    from visteria.container import Container

    return Container(settings, store=store)


@pytest.fixture
def fixed_now():
    """A fixed server time in the middle of a UTC day."""
    return datetime(2026, 10, 18, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def api_gateway_event():
    """Create a sample API Gateway event."""
    def _create_event(
        method: str = "GET",
        path: str = "/",
        path_params: dict = None,
        query_params: dict = None,
        body: dict | str = None,
        api_key: str | None = API_KEY,
        source_ip: str = "10.0.0.1",
        forwarded_for: str | None = None,
        user_agent: str = "pytest-agent",
    ):
        headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        if api_key is not None:
            headers["x-api-key"] = api_key
        if forwarded_for is not None:
            headers["X-Forwarded-For"] = forwarded_for

        return {
            "httpMethod": method,
            "path": path,
            "pathParameters": path_params or {},
            "queryStringParameters": query_params or {},
            "body": body if isinstance(body, str) or body is None else json.dumps(body),
            "headers": headers,
            "requestContext": {
                "identity": {"sourceIp": source_ip},
            },
        }

    return _create_event


@pytest.fixture
def track_event(api_gateway_event):
    """Create a POST /api/visits/track event."""
    def _create_event(body, **kwargs):
        kwargs.setdefault("api_key", None)
        return api_gateway_event(
            method="POST",
            path="/api/visits/track",
            body=body,
            **kwargs,
        )

    return _create_event
