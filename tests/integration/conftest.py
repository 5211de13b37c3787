"""Integration test fixtures for LocalStack DynamoDB and Step Functions."""

from __future__ import annotations

import os
from functools import lru_cache

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

# Default LocalStack endpoint
LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
TABLE_SUFFIX = "-inttest"


@lru_cache(maxsize=1)
def _localstack_available() -> bool:
    """Check once per session whether LocalStack is reachable."""
    try:
        client = boto3.client(
            "dynamodb",
            region_name="us-east-1",
            endpoint_url=LOCALSTACK_URL,
            config=Config(connect_timeout=2, retries={"max_attempts": 1}),
        )
        client.list_tables()
        return True
    except (BotoCoreError, ClientError):
        return False


@pytest.fixture(autouse=True)
def require_localstack():
    if not _localstack_available():
        pytest.skip("LocalStack not available")


@pytest.fixture
def localstack_url() -> str:
    return LOCALSTACK_URL


@pytest.fixture
def table_suffix() -> str:
    return TABLE_SUFFIX
