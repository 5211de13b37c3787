"""Field references: ``$.`` paths resolved against workflow state at run time."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, field_validator

from ddbflow.core.exceptions import InvalidPathError, ReferenceResolutionError

_PATH_RE = re.compile(r"^\$\.[^.\[\]\s]+(?:\.[^.\[\]\s]+|\[\d+\])*$")
_SEGMENT_RE = re.compile(r"\.([^.\[\]\s]+)|\[(\d+)\]")


def validate_path(path: Any, step_id: str | None = None) -> str:
    """Check path syntax only. Nothing is resolved here."""
    if not isinstance(path, str) or not _PATH_RE.match(path):
        raise InvalidPathError(path, step_id)
    return path


def _segments(path: str) -> list[str | int]:
    out: list[str | int] = []
    for name, index in _SEGMENT_RE.findall(path[1:]):
        out.append(int(index) if index else name)
    return out


def resolve_path(path: str, state: Any) -> Any:
    """Walk ``path`` through ``state`` and return the value found there."""
    current = state
    walked = "$"
    for segment in _segments(validate_path(path)):
        if isinstance(segment, int):
            if not isinstance(current, list):
                raise ReferenceResolutionError(path, f"{walked} is not a list")
            if segment >= len(current):
                raise ReferenceResolutionError(path, f"{walked} has no index {segment}")
            current = current[segment]
            walked = f"{walked}[{segment}]"
        else:
            if not isinstance(current, dict):
                raise ReferenceResolutionError(path, f"{walked} is not an object")
            if segment not in current:
                raise ReferenceResolutionError(path, f"{walked} has no field {segment!r}")
            current = current[segment]
            walked = f"{walked}.{segment}"
    return current


class FieldReference(BaseModel):
    """A path into the workflow state, bound at definition time, resolved at run time."""

    model_config = {"frozen": True}

    path: str

    @field_validator("path", mode="before")
    @classmethod
    def _check_path(cls, v: Any) -> str:
        return validate_path(v)

    def resolve(self, state: Any) -> Any:
        return resolve_path(self.path, state)

    def __str__(self) -> str:
        return self.path


def ref(path: str) -> FieldReference:
    """Shorthand for ``FieldReference(path=path)``."""
    return FieldReference(path=validate_path(path))
