"""Typed DynamoDB attribute values whose value may be a literal or a field reference."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any, Union

from pydantic import BaseModel, model_validator

from ddbflow.core.exceptions import ParameterError
from ddbflow.models.paths import FieldReference


class AttributeType(StrEnum):
    S = "S"
    N = "N"
    B = "B"
    BOOL = "BOOL"
    NULL = "NULL"
    SS = "SS"
    NS = "NS"
    BS = "BS"
    M = "M"
    L = "L"


KEY_TYPES = frozenset({AttributeType.S, AttributeType.N, AttributeType.B})


def _is_number(v: Any) -> bool:
    if not isinstance(v, str):
        return False
    try:
        return Decimal(v).is_finite()
    except InvalidOperation:
        return False


def _number_text(v: Any) -> Any:
    if isinstance(v, bool):
        raise ParameterError(f"{v!r} is not a valid N attribute value")
    if isinstance(v, (int, float, Decimal)):
        return str(v)
    return v


class AttributeValue(BaseModel):
    """One DynamoDB attribute value, e.g. ``{"S": "1234"}``.

    Numbers are held as strings, as DynamoDB holds them. A FieldReference value
    is checked for path syntax only; its type is enforced at run time.
    """

    model_config = {"frozen": True}

    type: AttributeType
    value: Union[
        FieldReference,
        bool,
        str,
        list["AttributeValue"],
        dict[str, "AttributeValue"],
        list[str],
    ]

    @model_validator(mode="before")
    @classmethod
    def _stringify_numbers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        t, v = data.get("type"), data.get("value")
        if t == AttributeType.N:
            v = _number_text(v)
        elif t == AttributeType.NS and isinstance(v, list):
            v = [_number_text(i) for i in v]
        else:
            return data
        return {**data, "value": v}

    @model_validator(mode="after")
    def _check_literal(self) -> "AttributeValue":
        v = self.value
        if isinstance(v, FieldReference):
            return self
        t = self.type
        if t is AttributeType.S or t is AttributeType.B:
            ok = isinstance(v, str)
        elif t is AttributeType.N:
            ok = _is_number(v)
        elif t is AttributeType.BOOL:
            ok = isinstance(v, bool)
        elif t is AttributeType.NULL:
            ok = v is True
        elif t is AttributeType.SS or t is AttributeType.BS:
            ok = isinstance(v, list) and bool(v) and all(isinstance(i, str) for i in v)
        elif t is AttributeType.NS:
            ok = isinstance(v, list) and bool(v) and all(_is_number(i) for i in v)
        elif t is AttributeType.M:
            ok = isinstance(v, dict)
        else:
            ok = isinstance(v, list) and all(isinstance(i, AttributeValue) for i in v)
        if not ok:
            raise ParameterError(f"{v!r} is not a valid {t} attribute value")
        return self

    @property
    def is_reference(self) -> bool:
        return isinstance(self.value, FieldReference)

    # ---- constructors ----

    @classmethod
    def string(cls, value: str | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.S, value=value)

    @classmethod
    def number(cls, value: int | float | Decimal | str | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.N, value=value)

    @classmethod
    def binary(cls, value: str | FieldReference) -> "AttributeValue":
        """``value`` is the base64 encoded payload."""
        return cls(type=AttributeType.B, value=value)

    @classmethod
    def boolean(cls, value: bool | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.BOOL, value=value)

    @classmethod
    def null(cls) -> "AttributeValue":
        return cls(type=AttributeType.NULL, value=True)

    @classmethod
    def string_set(cls, value: list[str] | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.SS, value=value)

    @classmethod
    def number_set(cls, value: list[int | float | Decimal | str] | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.NS, value=value)

    @classmethod
    def binary_set(cls, value: list[str] | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.BS, value=value)

    @classmethod
    def from_map(cls, value: dict[str, "AttributeValue"] | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.M, value=value)

    @classmethod
    def from_list(cls, value: list["AttributeValue"] | FieldReference) -> "AttributeValue":
        return cls(type=AttributeType.L, value=value)

    def with_value(self, value: Any) -> "AttributeValue":
        """Same type, new value (re-validated)."""
        return AttributeValue(type=self.type, value=value)


class KeyAttribute(BaseModel):
    """One key attribute of a table's key schema."""

    model_config = {"frozen": True}

    name: str
    type: AttributeType = AttributeType.S

    @model_validator(mode="after")
    def _check_type(self) -> "KeyAttribute":
        if self.type not in KEY_TYPES:
            raise ParameterError(f"key attribute {self.name!r} cannot be of type {self.type}")
        return self


class RecordKey(BaseModel):
    """Name/value pair identifying a row by one of its key attributes."""

    model_config = {"frozen": True}

    name: str
    value: AttributeValue
