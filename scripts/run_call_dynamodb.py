"""Provision the Messages table, run the CRUD round-trip workflow, and check its output.

Usage:
    python scripts/run_call_dynamodb.py --endpoint-url http://localhost:4566
    python scripts/run_call_dynamodb.py --engine stepfunctions --role-arn arn:aws:iam::...:role/sfn
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

import boto3

from ddbflow.core.config import AppSettings, DynamoDBConfig, StepFunctionsConfig
from ddbflow.core.logging_config import configure_logging
from ddbflow.engines import create_engine
from ddbflow.models.execution import ExecutionResult, ExecutionStatus
from ddbflow.models.table import TableSchema
from ddbflow.workflows.call_dynamodb import (
    MESSAGES_TABLE,
    build_call_dynamodb_workflow,
    expected_output,
)

logger = logging.getLogger("run_call_dynamodb")

STATE_MACHINE_NAME = "CallDynamoDB"
READ_CAPACITY = 10
WRITE_CAPACITY = 5


def create_table(ddb: Any, schema: TableSchema, suffix: str = "") -> TableSchema:
    """Create the table with provisioned throughput. Skips if it already exists."""
    client = ddb.meta.client
    table_name = f"{schema.table_name}{suffix}"
    existing = client.list_tables().get("TableNames", [])
    if table_name in existing:
        print(f"  Table {table_name} already exists, skipping")
    else:
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": k.name, "KeyType": role}
                for k, role in zip(schema.key_attributes, ("HASH", "RANGE"))
            ],
            AttributeDefinitions=[
                {"AttributeName": k.name, "AttributeType": str(k.type)}
                for k in schema.key_attributes
            ],
            ProvisionedThroughput={
                "ReadCapacityUnits": READ_CAPACITY,
                "WriteCapacityUnits": WRITE_CAPACITY,
            },
        )
        client.get_waiter("table_exists").wait(TableName=table_name)
        print(f"  Created table {table_name}")
    return schema.model_copy(update={"table_name": table_name})


def delete_table(ddb: Any, table_name: str) -> None:
    ddb.meta.client.delete_table(TableName=table_name)
    print(f"  Deleted table {table_name}")


def run(settings: AppSettings, keep_table: bool = False) -> ExecutionResult:
    """Create the table, then register and execute the workflow against it."""
    kwargs: dict[str, Any] = {"region_name": settings.dynamodb.region}
    if settings.dynamodb.endpoint_url:
        kwargs["endpoint_url"] = settings.dynamodb.endpoint_url
    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating table...")
    table = create_table(ddb, MESSAGES_TABLE, suffix=settings.dynamodb.table_suffix)
    try:
        graph = build_call_dynamodb_workflow(table)
        engine = create_engine(settings)
        arn = engine.register(graph, STATE_MACHINE_NAME)
        print(f"StateMachineArn: {arn}")
        return engine.execute(arn)
    finally:
        if not keep_table:
            delete_table(ddb, table.table_name)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the DynamoDB CRUD workflow end to end")
    parser.add_argument("--endpoint-url", default=None, help="AWS endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--table-suffix", default="", help="Table name suffix, e.g. --table-suffix=-dev")
    parser.add_argument("--engine", choices=["local", "stepfunctions"], default="local")
    parser.add_argument("--role-arn", default="", help="Execution role for Step Functions")
    parser.add_argument("--keep-table", action="store_true", help="Do not delete the table afterwards")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    settings = AppSettings(
        engine=args.engine,
        log_level=args.log_level,
        dynamodb=DynamoDBConfig(
            region=args.region, endpoint_url=args.endpoint_url, table_suffix=args.table_suffix,
        ),
        stepfunctions=StepFunctionsConfig(
            region=args.region, endpoint_url=args.endpoint_url, role_arn=args.role_arn,
        ),
    )

    result = run(settings, keep_table=args.keep_table)
    print(f"Status: {result.status}")
    print(f"Output: {result.output!r}")

    if result.status is not ExecutionStatus.SUCCEEDED:
        logger.error("Execution failed: %s %s", result.error, result.cause)
        return 1
    if result.output != expected_output():
        logger.error("Expected output %r, got %r", expected_output(), result.output)
        return 1
    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
