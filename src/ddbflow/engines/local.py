"""In-process execution engine.

Runs a finalized graph step by step against an IItemStore. Step n's output is
step n+1's input, the way Step Functions threads state through a chain of
DynamoDB task states.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from ddbflow.core.exceptions import EngineError, ExecutionError, ReferenceResolutionError
from ddbflow.core.protocols import IItemStore
from ddbflow.core.types import ExecutionId, JsonDict, StateMachineArn
from ddbflow.models.attributes import AttributeType, AttributeValue
from ddbflow.models.execution import ExecutionResult, ExecutionStatus, StepRecord
from ddbflow.models.graph import WorkflowGraph
from ddbflow.models.paths import FieldReference, resolve_path
from ddbflow.models.steps import (
    DiscardResult,
    PassStep,
    ResultPolicy,
    SelectResult,
    Step,
    StepKind,
    TableStep,
)

logger = logging.getLogger(__name__)

LOCAL_ARN_PREFIX = "arn:aws:states:local:000000000000"

_STORE_CALLS = {
    StepKind.PUT_ITEM: "put_item",
    StepKind.GET_ITEM: "get_item",
    StepKind.UPDATE_ITEM: "update_item",
    StepKind.DELETE_ITEM: "delete_item",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(attr_type: AttributeType, value: Any, path: str) -> Any:
    """Check a resolved reference against the attribute type it is bound to."""
    if attr_type in (AttributeType.S, AttributeType.B):
        ok = isinstance(value, str)
    elif attr_type is AttributeType.N:
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            value = str(value)
        ok = isinstance(value, str)
    elif attr_type is AttributeType.BOOL:
        ok = isinstance(value, bool)
    elif attr_type is AttributeType.NULL:
        ok = value is True
    elif attr_type in (AttributeType.SS, AttributeType.BS):
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    elif attr_type is AttributeType.NS:
        if isinstance(value, list):
            value = [str(v) if isinstance(v, (int, float, Decimal)) else v for v in value]
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    elif attr_type is AttributeType.M:
        ok = isinstance(value, dict)
    else:
        ok = isinstance(value, list)
    if not ok:
        raise ReferenceResolutionError(
            path, f"expected a {attr_type} value, got {type(value).__name__}"
        )
    return value


def resolve_attribute(av: AttributeValue, state: Any) -> JsonDict:
    """Render ``av`` as DynamoDB JSON, resolving field references against ``state``."""
    value = av.value
    if isinstance(value, FieldReference):
        value = _coerce(av.type, value.resolve(state), value.path)
    elif av.type is AttributeType.M:
        value = {k: resolve_attribute(v, state) for k, v in value.items()}
    elif av.type is AttributeType.L:
        value = [resolve_attribute(v, state) for v in value]
    else:
        value = copy.deepcopy(value)
    return {str(av.type): value}


def apply_result_policy(policy: ResultPolicy, state: Any, result: Any) -> Any:
    """Decide what flows to the next step: the result, part of it, or the input."""
    if isinstance(policy, DiscardResult):
        return state
    if isinstance(policy, SelectResult):
        return resolve_path(policy.path, result)
    return result


class LocalExecutionEngine:
    """IExecutionEngine that interprets graphs in-process."""

    def __init__(self, store: IItemStore) -> None:
        self._store = store
        self._machines: dict[StateMachineArn, WorkflowGraph] = {}
        self._executions: dict[ExecutionId, ExecutionResult] = {}

    def register(self, graph: WorkflowGraph, name: str) -> StateMachineArn:
        arn = f"{LOCAL_ARN_PREFIX}:stateMachine:{name}"
        existing = self._machines.get(arn)
        if existing is not None and existing != graph:
            raise EngineError(f"State machine {name!r} already exists with a different definition")
        self._machines[arn] = graph.model_copy(deep=True)
        logger.info("Registered state machine %s with %d steps", arn, len(graph))
        return arn

    def execute(self, state_machine_arn: StateMachineArn, input: Any = None) -> ExecutionResult:
        graph = self._machines.get(state_machine_arn)
        if graph is None:
            raise EngineError(f"State machine {state_machine_arn} does not exist")
        name = state_machine_arn.rsplit(":", 1)[-1]
        result = ExecutionResult(
            execution_id=f"{LOCAL_ARN_PREFIX}:execution:{name}:{uuid.uuid4()}",
            state_machine_arn=state_machine_arn,
            start_date=_now(),
        )
        logger.info("Started execution %s", result.execution_id)

        state: Any = {} if input is None else copy.deepcopy(input)
        try:
            for step in graph.traverse():
                record = StepRecord(step_id=step.step_id, kind=step.kind,
                                    input=copy.deepcopy(state), start_time=_now())
                result.steps.append(record)
                state = self._run_step(step, state)
                record.output = copy.deepcopy(state)
                record.end_time = _now()
        except ExecutionError as exc:
            result.status = ExecutionStatus.FAILED
            result.error = type(exc).__name__
            result.cause = str(exc)
            logger.warning("Execution %s failed at step %s: %s",
                           result.execution_id, result.steps[-1].step_id, exc)
        else:
            result.status = ExecutionStatus.SUCCEEDED
            result.output = state
            logger.info("Execution %s succeeded", result.execution_id)
        result.stop_date = _now()

        self._executions[result.execution_id] = result
        return result.model_copy(deep=True)

    def describe_execution(self, execution_id: ExecutionId) -> ExecutionResult:
        try:
            return self._executions[execution_id].model_copy(deep=True)
        except KeyError:
            raise EngineError(f"Execution {execution_id} does not exist") from None

    def _run_step(self, step: Step, state: Any) -> Any:
        if isinstance(step, PassStep):
            result = copy.deepcopy(step.payload) if step.payload is not None else state
        elif isinstance(step, TableStep):
            params = step.api_parameters(lambda av: resolve_attribute(av, state))
            result = getattr(self._store, _STORE_CALLS[step.kind])(**params)
        else:
            raise EngineError(f"Step {step.step_id!r} has unsupported kind")
        return apply_result_policy(step.result, state, result)
