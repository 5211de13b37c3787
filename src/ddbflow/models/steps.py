"""Workflow steps: a pass-through seed step and the four DynamoDB item operations.

Steps are frozen pydantic models. A step's kind is a Literal field, so it is
fixed when the step is created. Literal parameters are validated at
construction; field references are only checked for path syntax.
"""

from __future__ import annotations

import copy
import re
from enum import StrEnum
from typing import Annotated, Any, Callable, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ddbflow.core.exceptions import ParameterError
from ddbflow.core.types import JsonDict
from ddbflow.models.attributes import AttributeType, AttributeValue, RecordKey
from ddbflow.models.paths import FieldReference, validate_path
from ddbflow.models.table import TableSchema

AttributeRenderer = Callable[[AttributeValue], Any]

_VALUE_PLACEHOLDER_RE = re.compile(r"(?<![\w:])(:[A-Za-z0-9_]+)")
_NAME_PLACEHOLDER_RE = re.compile(r"(#[A-Za-z0-9_]+)")


class StepKind(StrEnum):
    PASS = "PASS"
    PUT_ITEM = "PUT_ITEM"
    GET_ITEM = "GET_ITEM"
    UPDATE_ITEM = "UPDATE_ITEM"
    DELETE_ITEM = "DELETE_ITEM"


class ReturnValues(StrEnum):
    NONE = "NONE"
    ALL_OLD = "ALL_OLD"
    UPDATED_OLD = "UPDATED_OLD"
    ALL_NEW = "ALL_NEW"
    UPDATED_NEW = "UPDATED_NEW"


# ---------------------------------------------------------------------------
# Result policy
# ---------------------------------------------------------------------------

class FullResult(BaseModel):
    """The step's whole result becomes the next step's input."""

    model_config = {"frozen": True}

    policy: Literal["full"] = "full"


class SelectResult(BaseModel):
    """Only the sub-value at ``path`` of the step's result flows forward."""

    model_config = {"frozen": True}

    policy: Literal["select"] = "select"
    path: str

    @field_validator("path", mode="before")
    @classmethod
    def _check_path(cls, v: Any) -> str:
        return validate_path(v)


class DiscardResult(BaseModel):
    """The step's result is dropped; its input flows forward unchanged."""

    model_config = {"frozen": True}

    policy: Literal["discard"] = "discard"


ResultPolicy = Annotated[
    Union[FullResult, SelectResult, DiscardResult], Field(discriminator="policy")
]

FULL = FullResult()
DISCARD = DiscardResult()


def select(path: str) -> SelectResult:
    return SelectResult(path=validate_path(path))


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

class Step(BaseModel):
    """Common fields of every step."""

    model_config = {"frozen": True}

    # fields whose AttributeValues may be rebound to field references
    reference_slots: ClassVar[tuple[str, ...]] = ()

    step_id: str
    comment: str = ""
    result: ResultPolicy = FULL

    @field_validator("step_id")
    @classmethod
    def _check_step_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ParameterError("step identifier must be a non-empty string")
        return v

    @model_validator(mode="after")
    def _check(self) -> "Step":
        self.check_parameters()
        return self

    def check_parameters(self) -> None:
        """Static checks on parameters; subclasses raise DefinitionError subclasses."""

    def with_reference(
        self,
        slot: str,
        reference: FieldReference,
        attribute_type: AttributeType | None = None,
    ) -> "Step":
        """Return a copy with ``reference`` bound into parameter ``slot``.

        Slots are ``field`` (a record key) or ``field.key`` (an entry of an
        attribute map, e.g. ``item.Text`` or ``expression_attribute_values.:val``).
        """
        field, _, key = slot.partition(".")
        if field not in self.reference_slots:
            raise ParameterError(f"unknown parameter slot {slot!r}", self.step_id)
        current = getattr(self, field)

        if isinstance(current, dict):
            if not key:
                raise ParameterError(f"slot {slot!r} needs an entry name, e.g. {field}.<name>",
                                     self.step_id)
            updated = dict(current)
            updated[key] = _rebind(current.get(key), reference, attribute_type, slot, self.step_id)
            update: dict[str, Any] = {field: updated}
        elif isinstance(current, RecordKey):
            if key:
                raise ParameterError(f"slot {slot!r} is a record key and takes no entry name",
                                     self.step_id)
            update = {field: RecordKey(
                name=current.name,
                value=_rebind(current.value, reference, attribute_type, slot, self.step_id),
            )}
        else:
            raise ParameterError(f"slot {slot!r} is not set on this step", self.step_id)

        rebound = self.model_copy(update=update)
        rebound.check_parameters()
        return rebound


def _rebind(existing: AttributeValue | None, reference: FieldReference,
            attribute_type: AttributeType | None, slot: str, step_id: str) -> AttributeValue:
    if existing is not None:
        if attribute_type is not None and attribute_type != existing.type:
            raise ParameterError(
                f"slot {slot!r} holds a {existing.type} value, cannot rebind as {attribute_type}",
                step_id,
            )
        return existing.with_value(reference)
    if attribute_type is None:
        raise ParameterError(f"slot {slot!r} is empty, an attribute type is required", step_id)
    return AttributeValue(type=attribute_type, value=reference)


class PassStep(Step):
    """Emits ``payload`` as its result, or its input when no payload is set."""

    kind: Literal[StepKind.PASS] = StepKind.PASS
    payload: Any = None

    @field_validator("payload", mode="before")
    @classmethod
    def _own_payload(cls, v: Any) -> Any:
        return copy.deepcopy(v)


class TableStep(Step):
    """Base for steps that call a DynamoDB item API on one table."""

    api_action: ClassVar[str] = ""
    allowed_return_values: ClassVar[frozenset[ReturnValues]] = frozenset(
        {ReturnValues.NONE, ReturnValues.ALL_OLD}
    )

    table: TableSchema
    condition_expression: Optional[str] = None
    expression_attribute_names: dict[str, str] = Field(default_factory=dict)
    expression_attribute_values: dict[str, AttributeValue] = Field(default_factory=dict)
    return_values: Optional[ReturnValues] = None

    def expressions(self) -> list[str]:
        return [e for e in (self.condition_expression,) if e]

    def check_parameters(self) -> None:
        if self.return_values is not None and self.return_values not in self.allowed_return_values:
            raise ParameterError(
                f"return_values {self.return_values} is not supported by {self.api_action}",
                self.step_id,
            )
        self._check_placeholders()

    def _check_placeholders(self) -> None:
        text = " ".join(self.expressions())
        used_values = set(_VALUE_PLACEHOLDER_RE.findall(text))
        used_names = set(_NAME_PLACEHOLDER_RE.findall(text))
        for name in self.expression_attribute_values:
            if not name.startswith(":"):
                raise ParameterError(f"expression attribute value {name!r} must start with ':'",
                                     self.step_id)
        for name in self.expression_attribute_names:
            if not name.startswith("#"):
                raise ParameterError(f"expression attribute name {name!r} must start with '#'",
                                     self.step_id)
        missing = sorted(used_values - set(self.expression_attribute_values))
        if missing:
            raise ParameterError(f"expression uses unbound values {missing}", self.step_id)
        unused = sorted(set(self.expression_attribute_values) - used_values)
        if unused:
            raise ParameterError(f"expression attribute values {unused} are never used",
                                 self.step_id)
        missing = sorted(used_names - set(self.expression_attribute_names))
        if missing:
            raise ParameterError(f"expression uses unbound names {missing}", self.step_id)
        unused = sorted(set(self.expression_attribute_names) - used_names)
        if unused:
            raise ParameterError(f"expression attribute names {unused} are never used",
                                 self.step_id)

    def api_parameters(self, render: AttributeRenderer) -> JsonDict:
        """DynamoDB request parameters, with each AttributeValue passed through ``render``."""
        params: JsonDict = {"TableName": self.table.table_name}
        params.update(self._operation_parameters(render))
        if self.condition_expression:
            params["ConditionExpression"] = self.condition_expression
        if self.expression_attribute_names:
            params["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        if self.expression_attribute_values:
            params["ExpressionAttributeValues"] = {
                k: render(v) for k, v in self.expression_attribute_values.items()
            }
        if self.return_values is not None:
            params["ReturnValues"] = str(self.return_values)
        return params

    def _operation_parameters(self, render: AttributeRenderer) -> JsonDict:
        raise NotImplementedError


class KeyedTableStep(TableStep):
    """A table step that addresses one row by its key."""

    reference_slots: ClassVar[tuple[str, ...]] = (
        "partition_key", "sort_key", "expression_attribute_values",
    )

    partition_key: RecordKey
    sort_key: Optional[RecordKey] = None

    def check_parameters(self) -> None:
        self.table.check_key(self.partition_key, self.sort_key, self.step_id)
        super().check_parameters()

    def render_key(self, render: AttributeRenderer) -> JsonDict:
        key = {self.partition_key.name: render(self.partition_key.value)}
        if self.sort_key is not None:
            key[self.sort_key.name] = render(self.sort_key.value)
        return key


class PutItemStep(TableStep):
    api_action: ClassVar[str] = "putItem"
    reference_slots: ClassVar[tuple[str, ...]] = ("item", "expression_attribute_values")

    kind: Literal[StepKind.PUT_ITEM] = StepKind.PUT_ITEM
    item: dict[str, AttributeValue]

    def check_parameters(self) -> None:
        self.table.check_item(self.item, self.step_id)
        super().check_parameters()

    def _operation_parameters(self, render: AttributeRenderer) -> JsonDict:
        return {"Item": {k: render(v) for k, v in self.item.items()}}


class GetItemStep(KeyedTableStep):
    api_action: ClassVar[str] = "getItem"
    reference_slots: ClassVar[tuple[str, ...]] = ("partition_key", "sort_key")

    kind: Literal[StepKind.GET_ITEM] = StepKind.GET_ITEM
    consistent_read: bool = False
    projection_expression: Optional[str] = None

    def expressions(self) -> list[str]:
        return [e for e in (self.projection_expression,) if e]

    def check_parameters(self) -> None:
        if self.condition_expression or self.expression_attribute_values or self.return_values:
            raise ParameterError(
                "getItem takes no condition expression, attribute values or return values",
                self.step_id,
            )
        super().check_parameters()

    def _operation_parameters(self, render: AttributeRenderer) -> JsonDict:
        params: JsonDict = {"Key": self.render_key(render), "ConsistentRead": self.consistent_read}
        if self.projection_expression:
            params["ProjectionExpression"] = self.projection_expression
        return params


class UpdateItemStep(KeyedTableStep):
    api_action: ClassVar[str] = "updateItem"
    allowed_return_values: ClassVar[frozenset[ReturnValues]] = frozenset(ReturnValues)

    kind: Literal[StepKind.UPDATE_ITEM] = StepKind.UPDATE_ITEM
    update_expression: str

    def expressions(self) -> list[str]:
        return [self.update_expression, *super().expressions()]

    def check_parameters(self) -> None:
        if not self.update_expression.strip():
            raise ParameterError("update expression must not be empty", self.step_id)
        super().check_parameters()

    def _operation_parameters(self, render: AttributeRenderer) -> JsonDict:
        return {"Key": self.render_key(render), "UpdateExpression": self.update_expression}


class DeleteItemStep(KeyedTableStep):
    api_action: ClassVar[str] = "deleteItem"

    kind: Literal[StepKind.DELETE_ITEM] = StepKind.DELETE_ITEM

    def _operation_parameters(self, render: AttributeRenderer) -> JsonDict:
        return {"Key": self.render_key(render)}


AnyStep = Annotated[
    Union[PassStep, PutItemStep, GetItemStep, UpdateItemStep, DeleteItemStep],
    Field(discriminator="kind"),
]
