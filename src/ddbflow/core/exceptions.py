"""ddbflow exception hierarchy.

Build-time errors derive from DefinitionError and carry the offending step id.
Execution-time errors derive from ExecutionError. Nothing here subclasses
ValueError, so errors raised inside pydantic validators propagate unchanged.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for all ddbflow errors."""


# ---------------------------------------------------------------------------
# Build-time (static) errors
# ---------------------------------------------------------------------------

class DefinitionError(WorkflowError):
    """A workflow definition is not structurally well-formed."""

    def __init__(self, message: str, step_id: str | None = None) -> None:
        self.step_id = step_id
        if step_id is not None:
            message = f"Step {step_id!r}: {message}"
        super().__init__(message)


class DuplicateIdError(DefinitionError):
    """Two steps share an identifier."""

    def __init__(self, step_id: str) -> None:
        super().__init__("identifier is already registered in this workflow", step_id)


class DuplicateLinkError(DefinitionError):
    """A link would give a step a second predecessor or a second successor."""


class InvalidPathError(DefinitionError):
    """A reference path is not of the form ``$.field``."""

    def __init__(self, path: object, step_id: str | None = None) -> None:
        self.path = path
        super().__init__(f"invalid reference path {path!r}, must start with '$.'", step_id)


class CycleDetectedError(DefinitionError):
    """Traversal from the entry step revisits a step."""

    def __init__(self, step_id: str) -> None:
        super().__init__("step is revisited while traversing from the entry step", step_id)


class NoEntryStepError(DefinitionError):
    """A workflow was finalized without any steps."""

    def __init__(self) -> None:
        super().__init__("workflow has no steps, so there is no entry step")


class DisconnectedStepError(DefinitionError):
    """A step cannot be reached from the entry step."""

    def __init__(self, step_id: str) -> None:
        super().__init__("step is not reachable from the entry step", step_id)


class StepNotFoundError(DefinitionError):
    """A step identifier is not registered in the workflow."""

    def __init__(self, step_id: str) -> None:
        super().__init__("no such step in this workflow", step_id)


class ParameterError(DefinitionError):
    """A literal parameter does not fit the operation's expected shape."""


class KeySchemaError(DefinitionError):
    """A record key does not match the table's key schema."""


class WorkflowFrozenError(DefinitionError):
    """The builder was already finalized."""


# ---------------------------------------------------------------------------
# Execution-time errors
# ---------------------------------------------------------------------------

class ExecutionError(WorkflowError):
    """Error raised while a workflow executes."""


class ReferenceResolutionError(ExecutionError):
    """A field reference could not be resolved against the workflow state."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot resolve {path}: {reason}")


class StoreError(ExecutionError):
    """An item store call failed."""


class ConditionalCheckFailedError(StoreError):
    """A conditional write was rejected."""


class TableNotFoundError(StoreError):
    """The requested table does not exist."""


class EngineError(ExecutionError):
    """The execution engine rejected a request."""


class ExecutionTimeoutError(EngineError):
    """An execution did not reach a terminal status in time."""

    def __init__(self, execution_id: str, timeout: float) -> None:
        self.execution_id = execution_id
        self.timeout = timeout
        super().__init__(f"Execution {execution_id} still running after {timeout:g}s")
