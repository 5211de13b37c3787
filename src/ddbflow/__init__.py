"""ddbflow: linear workflow definitions over DynamoDB task steps."""

from __future__ import annotations

from ddbflow.builder import StepHandle, WorkflowBuilder
from ddbflow.models.attributes import AttributeType, AttributeValue, KeyAttribute, RecordKey
from ddbflow.models.graph import WorkflowGraph
from ddbflow.models.paths import FieldReference, ref
from ddbflow.models.steps import (
    DISCARD,
    FULL,
    DeleteItemStep,
    GetItemStep,
    PassStep,
    PutItemStep,
    UpdateItemStep,
    select,
)
from ddbflow.models.table import TableSchema

__version__ = "0.1.0"

__all__ = [
    "DISCARD",
    "FULL",
    "AttributeType",
    "AttributeValue",
    "DeleteItemStep",
    "FieldReference",
    "GetItemStep",
    "KeyAttribute",
    "PassStep",
    "PutItemStep",
    "RecordKey",
    "StepHandle",
    "TableSchema",
    "UpdateItemStep",
    "WorkflowBuilder",
    "WorkflowGraph",
    "ref",
    "select",
]
