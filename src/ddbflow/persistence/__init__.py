"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from ddbflow.core.config import AppSettings
from ddbflow.persistence.dynamodb_backend import DynamoDBItemStore, DynamoDBTableProvider
from ddbflow.persistence.memory_backend import MemoryItemStore


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up DynamoDB backends from application settings.

    Returns:
        Tuple of (item_store, table_provider).
    """
    if settings is None:
        settings = AppSettings()

    item_store = DynamoDBItemStore(
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    table_provider = DynamoDBTableProvider(
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        table_suffix=settings.dynamodb.table_suffix,
    )

    return item_store, table_provider


__all__ = ["DynamoDBItemStore", "DynamoDBTableProvider", "MemoryItemStore", "create_persistence"]
