"""Execution engines behind the IExecutionEngine protocol."""

from __future__ import annotations

from ddbflow.core.config import AppSettings
from ddbflow.core.protocols import IExecutionEngine, IItemStore
from ddbflow.engines.local import LocalExecutionEngine
from ddbflow.engines.stepfunctions import StepFunctionsEngine, render_definition
from ddbflow.persistence import DynamoDBItemStore


def create_engine(settings: AppSettings | None = None,
                  store: IItemStore | None = None) -> IExecutionEngine:
    """Create the engine selected by ``settings.engine``.

    The local engine runs against ``store``, or a DynamoDB store built from settings.
    """
    if settings is None:
        settings = AppSettings()

    if settings.engine == "stepfunctions":
        sfn = settings.stepfunctions
        return StepFunctionsEngine(
            role_arn=sfn.role_arn,
            region=sfn.region,
            endpoint_url=sfn.endpoint_url,
            poll_interval=sfn.poll_interval,
            timeout=sfn.timeout,
            partition=sfn.partition,
        )

    if store is None:
        store = DynamoDBItemStore(
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    return LocalExecutionEngine(store)


__all__ = ["LocalExecutionEngine", "StepFunctionsEngine", "create_engine", "render_definition"]
