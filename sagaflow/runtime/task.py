"""Task arena entries."""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from typing import Any

from sagaflow.effects.spawn import TaskHandle
from sagaflow.types import TaskId, TaskStatus


@dataclass(eq=False)
class TaskRecord:
    """Scheduler-side state of one running process.

    Parent and child links are task ids into the scheduler's arena, never
    object references.
    """

    id: TaskId
    name: str
    generator: Generator[Any, Any, Any]
    handle: TaskHandle[Any]
    parent_id: TaskId | None = None
    children: list[TaskId] = field(default_factory=list)
    status: TaskStatus = TaskStatus.RUNNING
    waiting_on: str | None = None
    release: Callable[[], None] | None = field(default=None, repr=False)
    epoch: int = 0
    started: bool = False
    cancel_requested: bool = False
    root: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


__all__ = ["TaskRecord"]
