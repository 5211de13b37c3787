"""Tests for the end-to-end runner script, against moto's DynamoDB."""

from __future__ import annotations

import boto3
import pytest
from moto import mock_aws
from run_call_dynamodb import create_table, main, run

from ddbflow.core.config import AppSettings, DynamoDBConfig
from ddbflow.models.execution import ExecutionStatus
from ddbflow.workflows.call_dynamodb import MESSAGES_TABLE


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTable:
    def test_creates_with_provisioned_throughput(self, ddb):
        schema = create_table(ddb, MESSAGES_TABLE, suffix="-test")
        assert schema.table_name == "Messages-test"
        desc = ddb.meta.client.describe_table(TableName="Messages-test")["Table"]
        assert desc["KeySchema"] == [{"AttributeName": "MessageId", "KeyType": "HASH"}]
        assert desc["ProvisionedThroughput"]["ReadCapacityUnits"] == 10
        assert desc["ProvisionedThroughput"]["WriteCapacityUnits"] == 5

    def test_idempotent_skips_existing(self, ddb):
        create_table(ddb, MESSAGES_TABLE)
        create_table(ddb, MESSAGES_TABLE)  # should not raise
        assert ddb.meta.client.list_tables()["TableNames"] == ["Messages"]


class TestRun:
    def test_local_engine_outputs_42(self, ddb):
        settings = AppSettings(dynamodb=DynamoDBConfig(table_suffix="-test"))
        result = run(settings)
        assert result.status is ExecutionStatus.SUCCEEDED
        assert result.output == "42"
        # table is torn down afterwards
        assert ddb.meta.client.list_tables()["TableNames"] == []

    def test_keep_table(self, ddb):
        run(AppSettings(), keep_table=True)
        assert ddb.meta.client.list_tables()["TableNames"] == ["Messages"]


class TestMain:
    def test_exit_code(self, ddb, capsys):
        assert main(["--table-suffix=-cli"]) == 0
        out = capsys.readouterr().out
        assert "Status: SUCCEEDED" in out
        assert "Output: '42'" in out
        assert "Created table Messages-cli" in out

    def test_suffix_without_leading_dash(self, ddb, capsys):
        assert main(["--table-suffix", "_cli", "--keep-table"]) == 0
        assert "Created table Messages_cli" in capsys.readouterr().out
        assert ddb.meta.client.list_tables()["TableNames"] == ["Messages_cli"]
