"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "DDBFLOW_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class StepFunctionsConfig(BaseSettings):
    """Step Functions configuration."""

    model_config = {"env_prefix": "DDBFLOW_SFN_"}

    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    role_arn: str = ""
    partition: str = "aws"
    poll_interval: float = 1.0
    timeout: float = 300.0


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "DDBFLOW_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    engine: Literal["local", "stepfunctions"] = "local"

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    stepfunctions: StepFunctionsConfig = StepFunctionsConfig()
