"""Execution status and results reported by an execution engine."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ddbflow.models.steps import StepKind


class ExecutionStatus(StrEnum):
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    ABORTED = "ABORTED"
    PENDING_REDRIVE = "PENDING_REDRIVE"

    @property
    def is_terminal(self) -> bool:
        return self not in (ExecutionStatus.RUNNING, ExecutionStatus.PENDING_REDRIVE)


class StepRecord(BaseModel):
    """Input and output of one executed step."""

    step_id: str
    kind: StepKind
    input: Any = None
    output: Any = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class ExecutionResult(BaseModel):
    """Status and output of one workflow execution."""

    execution_id: str
    state_machine_arn: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    output: Any = None
    error: str = ""
    cause: str = ""
    start_date: Optional[datetime] = None
    stop_date: Optional[datetime] = None
    steps: list[StepRecord] = Field(default_factory=list)
