"""Task spawning effects and the TaskHandle returned for spawned tasks."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

from frozendict import frozendict

from sagaflow.errors import TaskCancelledError, TaskNotDoneError
from sagaflow.result import Result
from sagaflow.types import TaskId, TaskStatus

from ._validators import ensure_process
from .base import EffectBase, create_effect_with_trace

T = TypeVar("T")


class _TaskOwner(Protocol):
    def cancel(self, task_id: TaskId) -> bool: ...

    def task_status(self, task_id: TaskId) -> tuple[TaskStatus, str | None]: ...


class TaskHandle(Generic[T]):
    """Handle for a task registered with a scheduler.

    The handle outlives the task's arena entry: once the task settles the
    scheduler releases it, but the handle keeps the outcome so ``Join`` and
    ``result()`` can still observe it.
    """

    def __init__(self, task_id: TaskId, name: str, owner: _TaskOwner) -> None:
        self.id = task_id
        self.name = name
        self._owner = owner
        self._status: TaskStatus | None = None
        self._outcome: Result[T] | None = None
        self._callbacks: list[Callable[[TaskHandle[T]], None]] = []

    @property
    def status(self) -> TaskStatus:
        if self._status is not None:
            return self._status
        return self._owner.task_status(self.id)[0]

    @property
    def waiting_on(self) -> str | None:
        """What a suspended task is waiting for, e.g. ``"Delay(5.0)"``."""
        if self._status is not None:
            return None
        return self._owner.task_status(self.id)[1]

    @property
    def outcome(self) -> Result[T] | None:
        return self._outcome

    def is_done(self) -> bool:
        return self._status is not None

    def is_cancelled(self) -> bool:
        return self._status is TaskStatus.CANCELLED

    def join(self) -> JoinEffect:
        """Effect that waits for this task and returns its result."""
        return create_effect_with_trace(JoinEffect(task=self))

    def cancel(self) -> None:
        """Cancel this task and its subtree immediately."""
        self._owner.cancel(self.id)

    def cancel_effect(self) -> CancelEffect:
        """Effect that cancels this task when yielded."""
        return create_effect_with_trace(CancelEffect(task=self))

    def result(self) -> T:
        """Return the task's value or raise its failure."""
        if self._status is None:
            raise TaskNotDoneError(f"Task {self.id} ({self.name}) is still {self.status.value}")
        if self._status is TaskStatus.CANCELLED:
            raise TaskCancelledError(f"Task {self.id} ({self.name}) was cancelled", task_id=self.id)
        assert self._outcome is not None
        return self._outcome.unwrap()

    def exception(self) -> BaseException | None:
        if self._status is None:
            raise TaskNotDoneError(f"Task {self.id} ({self.name}) is still {self.status.value}")
        if self._status is TaskStatus.CANCELLED:
            return TaskCancelledError(f"Task {self.id} ({self.name}) was cancelled", task_id=self.id)
        assert self._outcome is not None
        return self._outcome.err()

    def add_done_callback(self, callback: Callable[[TaskHandle[T]], None]) -> Callable[[], None]:
        """Call ``callback(handle)`` once the task settles.

        Callbacks run synchronously inside the scheduler step that settles the
        task, in registration order. Returns a function that removes the
        callback.
        """
        if self._status is not None:
            callback(self)
            return lambda: None
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    @property
    def has_listeners(self) -> bool:
        return bool(self._callbacks)

    def _settle(self, status: TaskStatus, outcome: Result[T]) -> None:
        self._status = status
        self._outcome = outcome
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def __repr__(self) -> str:
        return f"TaskHandle(id={self.id}, name={self.name!r}, status={self.status.value})"


@dataclass(frozen=True)
class SpawnEffect(EffectBase):
    """Start a new concurrent task and resume immediately with its handle."""

    process: Any
    args: tuple[Any, ...] = ()
    kwargs: frozendict[str, Any] = field(default_factory=frozendict)
    detached: bool = False
    name: str | None = None

    def __post_init__(self) -> None:
        ensure_process(self.process, name="process")
        if not isinstance(self.kwargs, frozendict):
            object.__setattr__(self, "kwargs", frozendict(self.kwargs))


@dataclass(frozen=True)
class JoinEffect(EffectBase):
    """Wait for a task to settle and return its result."""

    task: TaskHandle[Any]

    def __post_init__(self) -> None:
        if not isinstance(self.task, TaskHandle):
            raise TypeError(f"task must be TaskHandle, got {type(self.task).__name__}")

    def describe(self) -> str:
        return f"Join({self.task.id})"


@dataclass(frozen=True)
class CancelEffect(EffectBase):
    """Cancel a task's subtree; ``task=None`` cancels the current task."""

    task: TaskHandle[Any] | None = None

    def __post_init__(self) -> None:
        if self.task is not None and not isinstance(self.task, TaskHandle):
            raise TypeError(f"task must be TaskHandle or None, got {type(self.task).__name__}")


def Spawn(  # noqa: N802
    process: Any,
    *args: Any,
    detached: bool = False,
    name: str | None = None,
    **kwargs: Any,
) -> SpawnEffect:
    """Start ``process(*args, **kwargs)`` as a child task.

    Detached tasks have no parent: cancelling the spawner does not reach them
    and their failures are only logged unless someone joins them.

    Example:
        @do
        def program():
            task = yield Spawn(worker, "job-1")
            value = yield Join(task)
            return value
    """
    return create_effect_with_trace(
        SpawnEffect(
            process=process,
            args=tuple(args),
            kwargs=frozendict(kwargs),
            detached=detached,
            name=name,
        )
    )


def spawn(
    process: Any,
    *args: Any,
    detached: bool = False,
    name: str | None = None,
    **kwargs: Any,
) -> SpawnEffect:
    """Start a child task (lowercase alias)."""
    return create_effect_with_trace(
        SpawnEffect(
            process=process,
            args=tuple(args),
            kwargs=frozendict(kwargs),
            detached=detached,
            name=name,
        )
    )


def SpawnDetached(process: Any, *args: Any, **kwargs: Any) -> SpawnEffect:  # noqa: N802
    """Start an unparented task."""
    return create_effect_with_trace(
        SpawnEffect(process=process, args=tuple(args), kwargs=frozendict(kwargs), detached=True)
    )


def Join(task: TaskHandle[Any]) -> JoinEffect:  # noqa: N802
    """Wait for ``task`` and return its result, re-raising its failure."""
    return create_effect_with_trace(JoinEffect(task=task))


def join(task: TaskHandle[Any]) -> JoinEffect:
    """Wait for ``task`` (lowercase alias)."""
    return create_effect_with_trace(JoinEffect(task=task))


def Cancel(task: TaskHandle[Any] | None = None) -> CancelEffect:  # noqa: N802
    """Cancel ``task`` and its descendants; without a task, cancel self."""
    return create_effect_with_trace(CancelEffect(task=task))


def cancel(task: TaskHandle[Any] | None = None) -> CancelEffect:
    """Cancel a task (lowercase alias)."""
    return create_effect_with_trace(CancelEffect(task=task))


__all__ = [
    "Cancel",
    "CancelEffect",
    "Join",
    "JoinEffect",
    "Spawn",
    "SpawnDetached",
    "SpawnEffect",
    "TaskHandle",
    "cancel",
    "join",
    "spawn",
]
