"""Create/read/update/read/delete round trip over one DynamoDB item.

Start emits ``{"bar": "SomeValue"}``. PutItem stores it under MessageId 1234
with TotalCount 18, UpdateItem adds 24 to the count read back by
GetItemAfterPut, and GetItemAfterUpdate narrows its result to the new count.
DeleteItem discards its result, so the execution output is ``"42"``.
"""

from __future__ import annotations

from ddbflow.builder import WorkflowBuilder
from ddbflow.models.attributes import AttributeType, AttributeValue, KeyAttribute, RecordKey
from ddbflow.models.graph import WorkflowGraph
from ddbflow.models.steps import (
    DISCARD,
    DeleteItemStep,
    GetItemStep,
    PassStep,
    PutItemStep,
    UpdateItemStep,
    select,
)
from ddbflow.models.table import TableSchema

MESSAGES_TABLE = TableSchema(
    table_name="Messages",
    partition_key=KeyAttribute(name="MessageId", type=AttributeType.S),
)

MESSAGE_ID = "1234"
FIRST_NUMBER = 18
SECOND_NUMBER = 24
UPDATE_EXPRESSION = "SET TotalCount = :val + :rand"


def expected_output(first_number: int = FIRST_NUMBER, second_number: int = SECOND_NUMBER) -> str:
    return str(first_number + second_number)


def build_call_dynamodb_workflow(
    table: TableSchema = MESSAGES_TABLE,
    message_id: str = MESSAGE_ID,
    first_number: int = FIRST_NUMBER,
    second_number: int = SECOND_NUMBER,
) -> WorkflowGraph:
    key = RecordKey(name=table.partition_key.name, value=AttributeValue.string(message_id))
    builder = WorkflowBuilder(comment=f"CRUD round trip on {table.table_name}")

    start = builder.add_step(PassStep(step_id="Start", payload={"bar": "SomeValue"}))
    put = start.next(PutItemStep(
        step_id="PutItem",
        table=table,
        item={
            key.name: key.value,
            "Text": AttributeValue.string(""),
            "TotalCount": AttributeValue.number(first_number),
        },
    )).bind("item.Text", "$.bar")
    update = put.next(GetItemStep(step_id="GetItemAfterPut", table=table, partition_key=key)).next(
        UpdateItemStep(
            step_id="UpdateItem",
            table=table,
            partition_key=key,
            update_expression=UPDATE_EXPRESSION,
            expression_attribute_values={
                ":val": AttributeValue.number(0),
                ":rand": AttributeValue.number(second_number),
            },
        )
    ).bind("expression_attribute_values.:val", "$.Item.TotalCount.N")
    update.next(GetItemStep(
        step_id="GetItemAfterUpdate",
        table=table,
        partition_key=key,
        result=select("$.Item.TotalCount.N"),
    )).next(DeleteItemStep(
        step_id="DeleteItem",
        table=table,
        partition_key=key,
        result=DISCARD,
    ))

    return builder.finalize()
