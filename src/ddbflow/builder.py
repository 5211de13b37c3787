"""WorkflowBuilder: assembles steps into a linear workflow graph.

The builder owns an explicit registry from step id to step. Nothing is
registered globally; callers hold the builder and pass steps into it.
All checks here are static, and no I/O happens.
"""

from __future__ import annotations

import logging
from typing import Union

from ddbflow.core.exceptions import (
    CycleDetectedError,
    DisconnectedStepError,
    DuplicateIdError,
    DuplicateLinkError,
    NoEntryStepError,
    StepNotFoundError,
    WorkflowFrozenError,
)
from ddbflow.models.attributes import AttributeType
from ddbflow.models.graph import WorkflowGraph
from ddbflow.models.paths import FieldReference, validate_path
from ddbflow.models.steps import Step

logger = logging.getLogger(__name__)


class StepHandle:
    """A registered step, used to chain further steps after it."""

    def __init__(self, builder: WorkflowBuilder, step_id: str) -> None:
        self._builder = builder
        self.step_id = step_id

    @property
    def step(self) -> Step:
        return self._builder.get_step(self.step_id)

    def next(self, successor: Union[Step, "StepHandle"]) -> "StepHandle":
        """Add ``successor`` after this step, or link to an already registered handle."""
        if isinstance(successor, StepHandle):
            self._builder.link(self.step_id, successor.step_id)
            return successor
        return self._builder.add_step(successor, predecessor=self.step_id)

    def bind(self, slot: str, path: str, attribute_type: AttributeType | None = None) -> "StepHandle":
        self._builder.bind_reference(self.step_id, slot, path, attribute_type)
        return self

    def __repr__(self) -> str:
        return f"StepHandle({self.step_id!r})"


StepRef = Union[str, StepHandle]


def _step_id(ref: StepRef) -> str:
    return ref.step_id if isinstance(ref, StepHandle) else ref


class WorkflowBuilder:
    """Builds one WorkflowGraph. The first step added is the entry step."""

    def __init__(self, comment: str = "") -> None:
        self._comment = comment
        self._steps: dict[str, Step] = {}
        self._next: dict[str, str] = {}
        self._prev: dict[str, str] = {}
        self._graph: WorkflowGraph | None = None

    @property
    def frozen(self) -> bool:
        return self._graph is not None

    def __len__(self) -> int:
        return len(self._steps)

    def get_step(self, step_id: str) -> Step:
        try:
            return self._steps[step_id]
        except KeyError:
            raise StepNotFoundError(step_id) from None

    def _ensure_open(self, step_id: str | None = None) -> None:
        if self._graph is not None:
            raise WorkflowFrozenError("workflow is already finalized", step_id)

    def _check_link(self, predecessor: str, successor: str) -> None:
        if predecessor in self._next:
            raise DuplicateLinkError(
                f"already followed by {self._next[predecessor]!r}, cannot also link to {successor!r}",
                predecessor,
            )
        if successor in self._prev:
            raise DuplicateLinkError(
                f"already follows {self._prev[successor]!r}, cannot also follow {predecessor!r}",
                successor,
            )

    def add_step(self, step: Step, predecessor: StepRef | None = None) -> StepHandle:
        """Register ``step``, optionally as the sole successor of ``predecessor``."""
        self._ensure_open(step.step_id)
        if step.step_id in self._steps:
            raise DuplicateIdError(step.step_id)
        pred_id = None
        if predecessor is not None:
            pred_id = _step_id(predecessor)
            self.get_step(pred_id)
            self._check_link(pred_id, step.step_id)

        self._steps[step.step_id] = step
        if pred_id is not None:
            self._next[pred_id] = step.step_id
            self._prev[step.step_id] = pred_id
        return StepHandle(self, step.step_id)

    def link(self, predecessor: StepRef, successor: StepRef) -> None:
        """Link two registered steps. Cycles are only detected by finalize()."""
        pred_id, succ_id = _step_id(predecessor), _step_id(successor)
        self._ensure_open(pred_id)
        self.get_step(pred_id)
        self.get_step(succ_id)
        self._check_link(pred_id, succ_id)
        self._next[pred_id] = succ_id
        self._prev[succ_id] = pred_id

    def chain(self, *steps: Step) -> StepHandle:
        """Add ``steps`` so that each follows the one before it; return the last handle.

        The first step follows the current tail when the builder already has steps.
        """
        if not steps:
            raise ValueError("chain() needs at least one step")
        tail = self._tail()
        handle = self.add_step(steps[0], predecessor=tail)
        for step in steps[1:]:
            handle = handle.next(step)
        return handle

    def _tail(self) -> str | None:
        for step_id in reversed(self._steps):
            if step_id not in self._next:
                return step_id
        return None

    def bind_reference(
        self,
        step_id: StepRef,
        slot: str,
        path: str,
        attribute_type: AttributeType | None = None,
    ) -> None:
        """Bind ``path`` into a parameter slot of a registered step.

        Only the path syntax is checked; resolution happens at execution time.
        """
        step_id = _step_id(step_id)
        self._ensure_open(step_id)
        step = self.get_step(step_id)
        reference = FieldReference(path=validate_path(path, step_id))
        self._steps[step_id] = step.with_reference(slot, reference, attribute_type)

    def finalize(self) -> WorkflowGraph:
        """Check the chain and freeze it into a WorkflowGraph.

        Raises:
            NoEntryStepError: no steps were added.
            CycleDetectedError: traversal from the entry step revisits a step.
            DisconnectedStepError: a step is unreachable from the entry step.
        """
        if self._graph is not None:
            return self._graph.model_copy(deep=True)
        if not self._steps:
            raise NoEntryStepError()

        entry = next(iter(self._steps))
        order: list[str] = []
        seen: set[str] = set()
        current: str | None = entry
        while current is not None:
            if current in seen:
                raise CycleDetectedError(current)
            seen.add(current)
            order.append(current)
            current = self._next.get(current)

        for step_id in self._steps:
            if step_id not in seen:
                raise DisconnectedStepError(step_id)

        self._graph = WorkflowGraph(
            start_at=entry,
            steps=tuple(self._steps[s] for s in order),
            transitions=tuple((s, self._next.get(s)) for s in order),
            comment=self._comment,
        )
        logger.debug("Finalized workflow with %d steps: %s", len(order), " -> ".join(order))
        return self._graph.model_copy(deep=True)
