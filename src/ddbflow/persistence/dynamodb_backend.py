"""DynamoDB backends: the item store and the table provider."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ddbflow.core.exceptions import ConditionalCheckFailedError, StoreError, TableNotFoundError
from ddbflow.core.types import JsonDict
from ddbflow.models.attributes import AttributeType, KeyAttribute
from ddbflow.models.table import TableSchema

logger = logging.getLogger(__name__)


def _client(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.client("dynamodb", **kwargs)


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class DynamoDBItemStore:
    """Production IItemStore over the low-level DynamoDB client.

    Requests and responses use DynamoDB JSON (``{"S": "..."}``), the same shape
    Step Functions passes to and from its DynamoDB integration.
    """

    def __init__(self, region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._region = region
        self._endpoint_url = endpoint_url
        self._client = _client(region, endpoint_url)

    def _call(self, action: str, params: dict[str, Any]) -> JsonDict:
        table = params.get("TableName", "?")
        try:
            resp = getattr(self._client, action)(**params)
        except ClientError as exc:
            code = _error_code(exc)
            logger.warning("DynamoDB %s on %s failed: %s", action, table, code or exc)
            if code == "ConditionalCheckFailedException":
                raise ConditionalCheckFailedError(
                    f"DynamoDB {action} on {table!r}: conditional check failed"
                ) from exc
            if code == "ResourceNotFoundException":
                raise TableNotFoundError(f"DynamoDB table {table!r} not found") from exc
            raise StoreError(f"DynamoDB {action} on {table!r} failed: {exc}") from exc
        resp.pop("ResponseMetadata", None)
        return resp

    def put_item(self, **params: Any) -> JsonDict:
        return self._call("put_item", params)

    def get_item(self, **params: Any) -> JsonDict:
        return self._call("get_item", params)

    def update_item(self, **params: Any) -> JsonDict:
        return self._call("update_item", params)

    def delete_item(self, **params: Any) -> JsonDict:
        return self._call("delete_item", params)


class DynamoDBTableProvider:
    """ITableProvider reading key schemas from ``describe_table``."""

    def __init__(self, region: str = "us-east-1", endpoint_url: str | None = None,
                 table_suffix: str = "") -> None:
        self._table_suffix = table_suffix
        self._client = _client(region, endpoint_url)

    def table_name(self, base: str) -> str:
        return f"{base}{self._table_suffix}"

    def describe(self, table_name: str) -> TableSchema:
        name = self.table_name(table_name)
        try:
            table = self._client.describe_table(TableName=name)["Table"]
        except ClientError as exc:
            if _error_code(exc) == "ResourceNotFoundException":
                raise TableNotFoundError(f"DynamoDB table {name!r} not found") from exc
            raise StoreError(f"DynamoDB describe_table on {name!r} failed: {exc}") from exc

        types = {a["AttributeName"]: a["AttributeType"] for a in table["AttributeDefinitions"]}
        keys: dict[str, KeyAttribute] = {}
        for k in table["KeySchema"]:
            attr = KeyAttribute(name=k["AttributeName"], type=AttributeType(types[k["AttributeName"]]))
            keys[k["KeyType"]] = attr
        return TableSchema(table_name=name, partition_key=keys["HASH"], sort_key=keys.get("RANGE"))
