"""Integration tests running the CRUD workflow against LocalStack."""

from __future__ import annotations

import boto3
from run_call_dynamodb import create_table, delete_table, run

from ddbflow.core.config import AppSettings, DynamoDBConfig, StepFunctionsConfig
from ddbflow.models.execution import ExecutionStatus
from ddbflow.persistence.dynamodb_backend import DynamoDBTableProvider
from ddbflow.workflows.call_dynamodb import MESSAGES_TABLE


def _settings(url: str, suffix: str, engine: str = "local") -> AppSettings:
    return AppSettings(
        engine=engine,
        dynamodb=DynamoDBConfig(endpoint_url=url, table_suffix=suffix),
        stepfunctions=StepFunctionsConfig(
            endpoint_url=url,
            role_arn="arn:aws:iam::000000000000:role/StepFunctionsDynamoDB",
            poll_interval=0.5,
            timeout=60,
        ),
    )


class TestLocalStackRoundTrip:
    def test_local_engine(self, localstack_url, table_suffix):
        result = run(_settings(localstack_url, table_suffix))
        assert result.status is ExecutionStatus.SUCCEEDED
        assert result.output == "42"

    def test_stepfunctions_engine(self, localstack_url, table_suffix):
        result = run(_settings(localstack_url, table_suffix, engine="stepfunctions"))
        assert result.status is ExecutionStatus.SUCCEEDED
        assert result.output == "42"

    def test_table_provider_reads_schema(self, localstack_url, table_suffix):
        ddb = boto3.resource("dynamodb", region_name="us-east-1", endpoint_url=localstack_url)
        created = create_table(ddb, MESSAGES_TABLE, suffix=table_suffix)
        try:
            provider = DynamoDBTableProvider(endpoint_url=localstack_url, table_suffix=table_suffix)
            assert provider.describe("Messages") == created
        finally:
            delete_table(ddb, created.table_name)
