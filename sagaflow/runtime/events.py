"""Task lifecycle events published to scheduler observers.

Observers receive these synchronously from inside scheduler steps. They are
meant for logging, telemetry and tests; they must not mutate the scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from sagaflow.types import TaskId


@dataclass(frozen=True)
class TaskCreated:
    task_id: TaskId
    name: str
    parent_id: TaskId | None
    time: float


@dataclass(frozen=True)
class EffectDispatched:
    """A task yielded ``effect`` and its handler is about to run."""

    task_id: TaskId
    effect: Any
    time: float


@dataclass(frozen=True)
class TaskCompleted:
    task_id: TaskId
    value: Any
    time: float


@dataclass(frozen=True)
class TaskFailed:
    task_id: TaskId
    error: BaseException
    time: float


@dataclass(frozen=True)
class TaskCancelled:
    task_id: TaskId
    time: float


TaskEvent: TypeAlias = TaskCreated | EffectDispatched | TaskCompleted | TaskFailed | TaskCancelled


__all__ = [
    "EffectDispatched",
    "TaskCancelled",
    "TaskCompleted",
    "TaskCreated",
    "TaskEvent",
    "TaskFailed",
]
