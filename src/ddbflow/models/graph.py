"""The finalized, immutable workflow graph."""

from __future__ import annotations

from typing import Iterator, Optional

from pydantic import BaseModel

from ddbflow.core.exceptions import CycleDetectedError, StepNotFoundError
from ddbflow.models.steps import AnyStep


class WorkflowGraph(BaseModel):
    """Steps in traversal order plus the ``next`` linkage between them.

    Produced by ``WorkflowBuilder.finalize()``; never built by hand in normal use.
    ``transitions`` pairs every step id with its successor, or None for the last
    step. Both containers are tuples so a finalized graph cannot be relinked.
    """

    model_config = {"frozen": True}

    start_at: str
    steps: tuple[AnyStep, ...]
    transitions: tuple[tuple[str, Optional[str]], ...]
    comment: str = ""

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def step_ids(self) -> list[str]:
        return [s.step_id for s in self.steps]

    def get(self, step_id: str) -> AnyStep:
        for step in self.steps:
            if step.step_id == step_id:
                return step
        raise StepNotFoundError(step_id)

    def next_of(self, step_id: str) -> str | None:
        for source, target in self.transitions:
            if source == step_id:
                return target
        raise StepNotFoundError(step_id)

    def traverse(self) -> Iterator[AnyStep]:
        """Yield steps by following ``next`` links from the entry step."""
        seen: set[str] = set()
        current: str | None = self.start_at
        while current is not None:
            if current in seen:
                raise CycleDetectedError(current)
            seen.add(current)
            yield self.get(current)
            current = self.next_of(current)
