"""Error taxonomy for the sagaflow engine."""

from __future__ import annotations

from typing import Any


class SagaflowError(Exception):
    """Base class for every error raised by the engine."""


class OperationFailure(SagaflowError):
    """Raised into a task when an invoked operation raises or rejects.

    Attributes:
        cause: The exception produced by the operation.
        operation: The callable (or deferred) that failed.
    """

    def __init__(self, cause: BaseException, operation: Any = None) -> None:
        self.cause = cause
        self.operation = operation
        name = getattr(operation, "__qualname__", None) or repr(operation)
        super().__init__(f"Operation {name} failed: {cause!r}")
        self.__cause__ = cause


class TaskCancelledError(SagaflowError):
    """Cancellation signal delivered to a task's suspension point.

    It is also raised by ``Join``/``TaskHandle.result()`` when the awaited
    task was cancelled. It is never reported as an ``OperationFailure``.
    """

    def __init__(self, message: str = "Task was cancelled", *, task_id: Any = None) -> None:
        self.task_id = task_id
        super().__init__(message)


class ChannelClosed(SagaflowError):
    """Raised into a task taking from a channel that was closed and drained."""


class BufferOverflow(SagaflowError):
    """Raised by ``buffers.fixed`` when a put exceeds its limit."""


class UnmatchedEffectError(SagaflowError):
    """Raised when the handler table has no entry for a yielded value.

    This is a programming or versioning error and is fatal to the task that
    yielded the value; it is never thrown back into the process.
    """

    def __init__(self, effect: Any) -> None:
        self.effect = effect
        message = f"No handler for yielded value of type {type(effect).__name__}: {effect!r}"
        created_at = getattr(effect, "created_at", None)
        if created_at is not None:
            message += f"\n{created_at.format_full()}"
        super().__init__(message)


class TaskNotDoneError(SagaflowError):
    """Raised by ``TaskHandle.result()`` while the task is still running."""


class DeadlockError(SagaflowError):
    """Raised when a simulation can make no further progress."""


__all__ = [
    "BufferOverflow",
    "ChannelClosed",
    "DeadlockError",
    "OperationFailure",
    "SagaflowError",
    "TaskCancelledError",
    "TaskNotDoneError",
    "UnmatchedEffectError",
]
