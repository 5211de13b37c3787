"""Type aliases used across ddbflow."""

from __future__ import annotations

from typing import Any

JsonDict = dict[str, Any]
StepId = str
StateMachineArn = str
ExecutionId = str
