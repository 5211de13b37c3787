"""Shared fixtures."""

from __future__ import annotations

import pytest

from ddbflow.models.attributes import AttributeType, AttributeValue, KeyAttribute, RecordKey
from ddbflow.models.table import TableSchema


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches for a real profile."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def messages_table() -> TableSchema:
    return TableSchema(
        table_name="Messages",
        partition_key=KeyAttribute(name="MessageId", type=AttributeType.S),
    )


@pytest.fixture
def orders_table() -> TableSchema:
    """Composite-key table."""
    return TableSchema(
        table_name="Orders",
        partition_key=KeyAttribute(name="CustomerId", type=AttributeType.S),
        sort_key=KeyAttribute(name="OrderNo", type=AttributeType.N),
    )


@pytest.fixture
def message_key() -> RecordKey:
    return RecordKey(name="MessageId", value=AttributeValue.string("1234"))
