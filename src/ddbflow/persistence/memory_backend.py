"""Dict-backed fake of the DynamoDB item API for unit tests.

Supports the subset the workflow steps use: put/get/delete by key, ``SET``
update expressions with ``+``/``-`` arithmetic, and ``attribute_exists`` /
``attribute_not_exists`` conditions. Anything else raises StoreError.
"""

from __future__ import annotations

import copy
import json
import re
from decimal import Decimal
from typing import Any

from ddbflow.core.exceptions import ConditionalCheckFailedError, StoreError, TableNotFoundError
from ddbflow.core.types import JsonDict
from ddbflow.models.table import TableSchema

_CONDITION_RE = re.compile(r"^\s*(attribute_exists|attribute_not_exists)\(\s*([#\w]+)\s*\)\s*$")
_ASSIGN_RE = re.compile(r"^\s*([#\w]+)\s*=\s*([#:\w]+)\s*(?:([+-])\s*([#:\w]+))?\s*$")


class MemoryItemStore:
    """Dict-backed IItemStore for unit tests."""

    def __init__(self, *schemas: TableSchema) -> None:
        self._schemas: dict[str, TableSchema] = {}
        self._rows: dict[str, dict[tuple[str, ...], JsonDict]] = {}
        for schema in schemas:
            self.add_table(schema)

    def add_table(self, schema: TableSchema) -> None:
        self._schemas[schema.table_name] = schema
        self._rows.setdefault(schema.table_name, {})

    def items(self, table_name: str) -> list[JsonDict]:
        return [copy.deepcopy(i) for i in self._table(table_name).values()]

    # ---- helpers ----

    def _table(self, name: str) -> dict[tuple[str, ...], JsonDict]:
        if name not in self._rows:
            raise TableNotFoundError(f"table {name!r} not found")
        return self._rows[name]

    def _key(self, table_name: str, attrs: JsonDict, exact: bool) -> tuple[str, ...]:
        schema = self._schemas[table_name]
        names = [k.name for k in schema.key_attributes]
        if exact and set(attrs) != set(names):
            raise StoreError("The provided key element does not match the schema")
        out = []
        for key in schema.key_attributes:
            value = attrs.get(key.name)
            if not isinstance(value, dict) or list(value) != [str(key.type)]:
                raise StoreError("The provided key element does not match the schema")
            out.append(json.dumps(value, sort_keys=True))
        return tuple(out)

    @staticmethod
    def _name(token: str, names: dict[str, str]) -> str:
        if token.startswith("#"):
            if token not in names:
                raise StoreError(f"expression attribute name {token} is not defined")
            return names[token]
        return token

    def _check_condition(self, params: JsonDict, existing: JsonDict | None) -> None:
        expression = params.get("ConditionExpression")
        if not expression:
            return
        match = _CONDITION_RE.match(expression)
        if match is None:
            raise StoreError(f"unsupported condition expression {expression!r}")
        func, token = match.groups()
        attr = self._name(token, params.get("ExpressionAttributeNames", {}))
        present = existing is not None and attr in existing
        if present != (func == "attribute_exists"):
            raise ConditionalCheckFailedError("The conditional request failed")

    @staticmethod
    def _returning(params: JsonDict, old: JsonDict | None, new: JsonDict | None) -> JsonDict:
        mode = params.get("ReturnValues", "NONE")
        if mode == "NONE":
            return {}
        if mode == "ALL_OLD":
            return {"Attributes": copy.deepcopy(old)} if old else {}
        if mode == "ALL_NEW":
            return {"Attributes": copy.deepcopy(new)} if new else {}
        raise StoreError(f"unsupported ReturnValues {mode!r}")

    # ---- IItemStore methods ----

    def put_item(self, **params: Any) -> JsonDict:
        rows = self._table(params["TableName"])
        item = copy.deepcopy(params["Item"])
        key = self._key(params["TableName"], item, exact=False)
        old = rows.get(key)
        self._check_condition(params, old)
        rows[key] = item
        return self._returning(params, old, item)

    def get_item(self, **params: Any) -> JsonDict:
        rows = self._table(params["TableName"])
        item = rows.get(self._key(params["TableName"], params["Key"], exact=True))
        if item is None:
            return {}
        projection = params.get("ProjectionExpression")
        if projection:
            names = params.get("ExpressionAttributeNames", {})
            wanted = {self._name(t.strip(), names) for t in projection.split(",")}
            item = {k: v for k, v in item.items() if k in wanted}
        return {"Item": copy.deepcopy(item)}

    def delete_item(self, **params: Any) -> JsonDict:
        rows = self._table(params["TableName"])
        key = self._key(params["TableName"], params["Key"], exact=True)
        old = rows.get(key)
        self._check_condition(params, old)
        rows.pop(key, None)
        return self._returning(params, old, None)

    def update_item(self, **params: Any) -> JsonDict:
        rows = self._table(params["TableName"])
        key = self._key(params["TableName"], params["Key"], exact=True)
        old = rows.get(key)
        self._check_condition(params, old)

        new = copy.deepcopy(old) if old is not None else copy.deepcopy(params["Key"])
        expression = params["UpdateExpression"].strip()
        if not expression.upper().startswith("SET "):
            raise StoreError(f"unsupported update expression {expression!r}")
        names = params.get("ExpressionAttributeNames", {})
        values = params.get("ExpressionAttributeValues", {})

        for clause in expression[4:].split(","):
            match = _ASSIGN_RE.match(clause)
            if match is None:
                raise StoreError(f"unsupported update clause {clause.strip()!r}")
            target, left, op, right = match.groups()
            value = self._operand(left, new, names, values)
            if op:
                value = _arithmetic(value, op, self._operand(right, new, names, values))
            new[self._name(target, names)] = value

        rows[key] = new
        return self._returning(params, old, new)

    def _operand(self, token: str, item: JsonDict, names: dict[str, str],
                 values: dict[str, JsonDict]) -> JsonDict:
        if token.startswith(":"):
            if token not in values:
                raise StoreError(f"expression attribute value {token} is not defined")
            return copy.deepcopy(values[token])
        attr = self._name(token, names)
        if attr not in item:
            raise StoreError(f"attribute {attr!r} referenced in update expression does not exist")
        return copy.deepcopy(item[attr])


def _arithmetic(left: JsonDict, op: str, right: JsonDict) -> JsonDict:
    if "N" not in left or "N" not in right:
        raise StoreError("An operand in the update expression has an incorrect data type")
    a, b = Decimal(left["N"]), Decimal(right["N"])
    result = a + b if op == "+" else a - b
    return {"N": format(result.normalize(), "f")}
