"""AWS Step Functions engine: renders graphs to Amazon States Language and runs them."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ddbflow.core.exceptions import EngineError, ExecutionTimeoutError
from ddbflow.core.types import ExecutionId, JsonDict, StateMachineArn
from ddbflow.models.attributes import AttributeType, AttributeValue
from ddbflow.models.execution import ExecutionResult, ExecutionStatus
from ddbflow.models.graph import WorkflowGraph
from ddbflow.models.paths import FieldReference
from ddbflow.models.steps import DiscardResult, PassStep, SelectResult, Step, TableStep

logger = logging.getLogger(__name__)


def render_attribute(av: AttributeValue) -> JsonDict:
    """DynamoDB JSON for ASL Parameters; references become ``"<TYPE>.$": path``."""
    value = av.value
    if isinstance(value, FieldReference):
        return {f"{av.type}.$": value.path}
    if av.type is AttributeType.M:
        return {"M": {k: render_attribute(v) for k, v in value.items()}}
    if av.type is AttributeType.L:
        return {"L": [render_attribute(v) for v in value]}
    return {str(av.type): value}


def render_state(step: Step, next_id: str | None, partition: str = "aws") -> JsonDict:
    if isinstance(step, PassStep):
        state: JsonDict = {"Type": "Pass"}
        if step.payload is not None:
            state["Result"] = step.payload
    elif isinstance(step, TableStep):
        state = {
            "Type": "Task",
            "Resource": f"arn:{partition}:states:::dynamodb:{step.api_action}",
            "Parameters": step.api_parameters(render_attribute),
        }
    else:
        raise EngineError(f"Step {step.step_id!r} cannot be rendered to ASL")

    if step.comment:
        state["Comment"] = step.comment
    if isinstance(step.result, SelectResult):
        state["OutputPath"] = step.result.path
    elif isinstance(step.result, DiscardResult):
        state["ResultPath"] = None
    if next_id is None:
        state["End"] = True
    else:
        state["Next"] = next_id
    return state


def render_definition(graph: WorkflowGraph, partition: str = "aws") -> JsonDict:
    """Amazon States Language document for ``graph``."""
    definition: JsonDict = {"StartAt": graph.start_at}
    if graph.comment:
        definition["Comment"] = graph.comment
    definition["States"] = {
        step.step_id: render_state(step, graph.next_of(step.step_id), partition)
        for step in graph.traverse()
    }
    return definition


def _decode_output(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class StepFunctionsEngine:
    """IExecutionEngine backed by AWS Step Functions."""

    def __init__(
        self,
        role_arn: str = "",
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        poll_interval: float = 1.0,
        timeout: float = 300.0,
        partition: str = "aws",
        client: Any = None,
    ) -> None:
        self._role_arn = role_arn
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._partition = partition
        if client is None:
            kwargs: dict = {"region_name": region}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("stepfunctions", **kwargs)
        self._client = client

    def register(self, graph: WorkflowGraph, name: str) -> StateMachineArn:
        if not self._role_arn:
            raise EngineError("A role ARN is required to create a state machine")
        definition = json.dumps(render_definition(graph, self._partition))
        try:
            resp = self._client.create_state_machine(
                name=name, definition=definition, roleArn=self._role_arn, type="STANDARD",
            )
        except ClientError as exc:
            raise EngineError(f"create_state_machine {name!r} failed: {exc}") from exc
        arn = resp["stateMachineArn"]
        logger.info("Registered state machine %s with %d steps", arn, len(graph))
        return arn

    def execute(self, state_machine_arn: StateMachineArn, input: Any = None) -> ExecutionResult:
        """Start an execution and poll until it reaches a terminal status."""
        payload = json.dumps(input if input is not None else {})
        try:
            resp = self._client.start_execution(stateMachineArn=state_machine_arn, input=payload)
        except ClientError as exc:
            raise EngineError(f"start_execution on {state_machine_arn} failed: {exc}") from exc
        execution_id = resp["executionArn"]
        logger.info("Started execution %s", execution_id)

        deadline = time.monotonic() + self._timeout
        while True:
            result = self.describe_execution(execution_id)
            if result.status.is_terminal:
                break
            if time.monotonic() >= deadline:
                raise ExecutionTimeoutError(execution_id, self._timeout)
            time.sleep(self._poll_interval)

        if result.status is ExecutionStatus.SUCCEEDED:
            logger.info("Execution %s succeeded", execution_id)
        else:
            logger.warning("Execution %s ended %s: %s %s",
                           execution_id, result.status, result.error, result.cause)
        return result

    def describe_execution(self, execution_id: ExecutionId) -> ExecutionResult:
        try:
            resp = self._client.describe_execution(executionArn=execution_id)
        except ClientError as exc:
            raise EngineError(f"describe_execution {execution_id} failed: {exc}") from exc
        return ExecutionResult(
            execution_id=resp["executionArn"],
            state_machine_arn=resp["stateMachineArn"],
            status=ExecutionStatus(resp["status"]),
            output=_decode_output(resp.get("output")),
            error=resp.get("error", ""),
            cause=resp.get("cause", ""),
            start_date=resp.get("startDate"),
            stop_date=resp.get("stopDate"),
        )
