"""Managed table handle: the key schema a table declares."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from ddbflow.core.exceptions import KeySchemaError
from ddbflow.models.attributes import AttributeValue, KeyAttribute, RecordKey


class TableSchema(BaseModel):
    """Name and key schema of a DynamoDB table."""

    model_config = {"frozen": True}

    table_name: str
    partition_key: KeyAttribute
    sort_key: Optional[KeyAttribute] = None

    @property
    def key_attributes(self) -> list[KeyAttribute]:
        return [k for k in (self.partition_key, self.sort_key) if k is not None]

    def check_key(
        self,
        partition_key: RecordKey,
        sort_key: RecordKey | None = None,
        step_id: str | None = None,
    ) -> None:
        """Raise KeySchemaError unless the key matches this table's schema exactly."""
        _check_one(self.partition_key, partition_key, "partition", self.table_name, step_id)
        if self.sort_key is None:
            if sort_key is not None:
                raise KeySchemaError(
                    f"table {self.table_name!r} has no sort key, got {sort_key.name!r}", step_id
                )
        elif sort_key is None:
            raise KeySchemaError(
                f"table {self.table_name!r} requires sort key {self.sort_key.name!r}", step_id
            )
        else:
            _check_one(self.sort_key, sort_key, "sort", self.table_name, step_id)

    def check_item(self, item: dict[str, AttributeValue], step_id: str | None = None) -> None:
        """An item must carry every key attribute with its declared type."""
        for key in self.key_attributes:
            if key.name not in item:
                raise KeySchemaError(
                    f"item for table {self.table_name!r} is missing key attribute {key.name!r}",
                    step_id,
                )
            _check_one(key, RecordKey(name=key.name, value=item[key.name]), "key",
                       self.table_name, step_id)


def _check_one(expected: KeyAttribute, actual: RecordKey, role: str,
               table_name: str, step_id: str | None) -> None:
    if actual.name != expected.name:
        raise KeySchemaError(
            f"{role} key of table {table_name!r} is {expected.name!r}, got {actual.name!r}",
            step_id,
        )
    if actual.value.type != expected.type:
        raise KeySchemaError(
            f"{role} key {expected.name!r} of table {table_name!r} is of type "
            f"{expected.type}, got {actual.value.type}",
            step_id,
        )
