"""Protocol interfaces for the collaborators a workflow runs against.

Structural typing only: engines and stores satisfy these without inheriting
from them, and tests can check conformance with isinstance().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ddbflow.core.types import ExecutionId, JsonDict, StateMachineArn

if TYPE_CHECKING:
    from ddbflow.models.execution import ExecutionResult
    from ddbflow.models.graph import WorkflowGraph
    from ddbflow.models.table import TableSchema


# ---------------------------------------------------------------------------
# Managed Table provider
# ---------------------------------------------------------------------------

@runtime_checkable
class ITableProvider(Protocol):
    """Looks up a table's key schema."""

    def describe(self, table_name: str) -> TableSchema: ...


# ---------------------------------------------------------------------------
# Item store
# ---------------------------------------------------------------------------

@runtime_checkable
class IItemStore(Protocol):
    """DynamoDB item API, taking and returning DynamoDB-JSON shaped dicts."""

    def put_item(self, **params: Any) -> JsonDict: ...

    def get_item(self, **params: Any) -> JsonDict: ...

    def update_item(self, **params: Any) -> JsonDict: ...

    def delete_item(self, **params: Any) -> JsonDict: ...


# ---------------------------------------------------------------------------
# Workflow Execution Engine
# ---------------------------------------------------------------------------

@runtime_checkable
class IExecutionEngine(Protocol):
    """Registers finalized graphs and runs them to a terminal status."""

    def register(self, graph: WorkflowGraph, name: str) -> StateMachineArn: ...

    def execute(self, state_machine_arn: StateMachineArn, input: Any = None) -> ExecutionResult: ...

    def describe_execution(self, execution_id: ExecutionId) -> ExecutionResult: ...
