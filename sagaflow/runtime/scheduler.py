"""Cooperative scheduler that interprets effects yielded by processes.

The Scheduler owns the task arena, the ready queue and the broadcast
signal waiters. It steps one task at a time: a task runs until it
suspends, completes or fails, and only then does the next ready entry run.
Nothing here blocks; runtimes decide when ``run_until_idle`` is called and
how time moves.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Generator, Mapping
from dataclasses import dataclass
from itertools import count
from typing import Any

from sagaflow.effects.spawn import TaskHandle
from sagaflow.errors import TaskCancelledError, UnmatchedEffectError
from sagaflow.patterns import Pattern, matches
from sagaflow.program import process_name, to_generator
from sagaflow.result import Err, Ok, Result
from sagaflow.store import Store, StoreBridge
from sagaflow.types import TaskId, TaskStatus
from sagaflow.utils import DEBUG_EFFECTS

from .actions import Action, Fail, Resume, ResumeError
from .clock import Clock, SimClock
from .events import (
    EffectDispatched,
    TaskCancelled,
    TaskCompleted,
    TaskCreated,
    TaskEvent,
    TaskFailed,
)
from .handlers import CLEANUP_EFFECTS, HandlerContext, HandlerTable, default_handlers, lookup_handler
from .task import TaskRecord

logger = logging.getLogger(__name__)

AsyncBridge = Callable[[Any, Callable[[Result[Any]], None]], Callable[[], None]]
Observer = Callable[[TaskEvent], None]


class Continuation:
    """One-shot capability to resume a suspended task.

    Stamped with the task's suspension epoch: resuming after the task was
    cancelled, or after another continuation already resumed it, is a no-op.
    """

    __slots__ = ("_scheduler", "task_id", "epoch")

    def __init__(self, scheduler: Scheduler, task_id: TaskId, epoch: int) -> None:
        self._scheduler = scheduler
        self.task_id = task_id
        self.epoch = epoch

    def resume(self, value: Any = None) -> bool:
        return self._scheduler._resume(self.task_id, self.epoch, Ok(value))

    def throw(self, error: BaseException) -> bool:
        return self._scheduler._resume(self.task_id, self.epoch, Err(error))

    def deliver(self, outcome: Result[Any]) -> bool:
        return self._scheduler._resume(self.task_id, self.epoch, outcome)

    def __repr__(self) -> str:
        return f"Continuation(task={self.task_id}, epoch={self.epoch})"


@dataclass(eq=False)
class _SignalWaiter:
    pattern: Pattern
    continuation: Continuation


class Scheduler:
    """Single coordination point for every task of one runtime.

    Args:
        store: Store Bridge the engine reads, dispatches to and listens on.
        clock: Time source for Delay timers.
        handlers: Handler table; defaults to ``default_handlers()``.
        async_bridge: Runs awaitables returned by invoked operations.
        on_ready: Called when work becomes ready outside ``run_until_idle``.
        warn_on_unjoined_failures: Log a warning when a spawned task fails
            and nothing is waiting for it.
    """

    def __init__(
        self,
        store: StoreBridge | None = None,
        clock: Clock | None = None,
        *,
        handlers: Mapping[type, Any] | None = None,
        async_bridge: AsyncBridge | None = None,
        on_ready: Callable[[], None] | None = None,
        warn_on_unjoined_failures: bool = True,
    ) -> None:
        self.store: StoreBridge = store if store is not None else Store()
        self.clock: Clock = clock if clock is not None else SimClock()
        self.handlers: HandlerTable = dict(handlers) if handlers is not None else default_handlers()
        self.async_bridge = async_bridge
        self.on_ready = on_ready
        self.warn_on_unjoined_failures = warn_on_unjoined_failures

        self._tasks: dict[TaskId, TaskRecord] = {}
        self._ready: deque[tuple[TaskId, int, Result[Any]]] = deque()
        self._signal_waiters: list[_SignalWaiter] = []
        self._observers: list[Observer] = []
        self._ids = count(1)
        self._running: list[TaskId] = []
        self._draining = False
        self._unsubscribe_store = self.store.subscribe(self._on_action)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def schedule(self, process: Any, *args: Any, name: str | None = None, **kwargs: Any) -> TaskHandle[Any]:
        """Register a root task; it starts at the next drain."""
        generator = to_generator(process, args, kwargs)
        record = self._create_task(generator, name or process_name(process), parent=None)
        record.root = True
        return record.handle

    def spawn_child(
        self,
        parent: TaskRecord | None,
        process: Any,
        args: tuple[Any, ...] = (),
        kwargs: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> TaskHandle[Any]:
        """Create a task; ``parent=None`` makes it detached."""
        generator = to_generator(process, args, kwargs)
        record = self._create_task(generator, name or process_name(process), parent=parent)
        return record.handle

    def run_until_idle(self) -> None:
        """Step ready tasks until the ready queue is empty."""
        if self._draining:
            return
        self._draining = True
        try:
            while self._ready:
                task_id, epoch, outcome = self._ready.popleft()
                record = self._tasks.get(task_id)
                if record is None or record.is_terminal or record.cancel_requested:
                    continue
                if record.epoch != epoch:
                    logger.debug("Skipping stale ready entry for task %s", task_id)
                    continue
                self._step(record, outcome)
        finally:
            self._draining = False

    def cancel(self, task_id: TaskId) -> bool:
        """Cancel a task and its attached descendants, children first.

        Returns False if the task is unknown, already settled or already
        being cancelled. A task cancelling itself (or an ancestor that is
        currently running) is unwound when its current dispatch returns.
        """
        record = self._tasks.get(task_id)
        if record is None or record.is_terminal or record.cancel_requested:
            return False
        record.cancel_requested = True
        logger.debug("Cancelling task %s (%s)", record.id, record.name)
        self._release(record)
        for child_id in list(record.children):
            self.cancel(child_id)
        if record.id in self._running:
            return True
        self._finish_cancel(record)
        return True

    def get_task(self, task_id: TaskId) -> TaskHandle[Any] | None:
        record = self._tasks.get(task_id)
        return record.handle if record is not None else None

    def task_status(self, task_id: TaskId) -> tuple[TaskStatus, str | None]:
        record = self._tasks.get(task_id)
        if record is None:
            raise KeyError(f"Unknown task {task_id}")
        return record.status, record.waiting_on

    @property
    def tasks(self) -> list[TaskHandle[Any]]:
        """Handles of every task that has not settled yet."""
        return [record.handle for record in self._tasks.values()]

    def add_observer(self, observer: Observer) -> Callable[[], None]:
        """Receive lifecycle events; returns a function that removes the observer."""
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def continuation(self, record: TaskRecord) -> Continuation:
        return Continuation(self, record.id, record.epoch)

    def add_signal_waiter(self, pattern: Pattern, continuation: Continuation) -> Callable[[], None]:
        """Register a broadcast wait; waiters are served in registration order."""
        waiter = _SignalWaiter(pattern, continuation)
        self._signal_waiters.append(waiter)

        def remove() -> None:
            if waiter in self._signal_waiters:
                self._signal_waiters.remove(waiter)

        return remove

    def close(self) -> None:
        """Cancel every live task and detach from the store.

        Children of a parent that already settled are treated as roots.
        """
        for record in list(self._tasks.values()):
            if record.parent_id is None or record.parent_id not in self._tasks:
                self.cancel(record.id)
        self._unsubscribe_store()

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    def _create_task(
        self,
        generator: Generator[Any, Any, Any],
        name: str,
        parent: TaskRecord | None,
    ) -> TaskRecord:
        task_id = TaskId(next(self._ids))
        handle: TaskHandle[Any] = TaskHandle(task_id, name, self)
        record = TaskRecord(
            id=task_id,
            name=name,
            generator=generator,
            handle=handle,
            parent_id=parent.id if parent is not None else None,
        )
        self._tasks[task_id] = record
        if parent is not None:
            parent.children.append(task_id)
        logger.debug("Created task %s (%s) parent=%s", task_id, name, record.parent_id)
        self._notify(TaskCreated(task_id, name, record.parent_id, self.clock.now()))
        self._ready.append((task_id, record.epoch, Ok(None)))
        self._wake()
        return record

    def _resume(self, task_id: TaskId, epoch: int, outcome: Result[Any]) -> bool:
        record = self._tasks.get(task_id)
        if record is None or record.is_terminal or record.cancel_requested or record.epoch != epoch:
            logger.debug("Discarding stale resumption of task %s (epoch %s)", task_id, epoch)
            return False
        record.epoch += 1
        self._ready.append((task_id, record.epoch, outcome))
        self._wake()
        return True

    def _wake(self) -> None:
        if self.on_ready is not None and not self._draining:
            self.on_ready()

    def _step(self, record: TaskRecord, outcome: Result[Any]) -> None:
        record.status = TaskStatus.RUNNING
        record.waiting_on = None
        record.release = None
        self._running.append(record.id)
        try:
            while True:
                try:
                    record.started = True
                    if isinstance(outcome, Err):
                        effect = record.generator.throw(outcome.error)
                    else:
                        effect = record.generator.send(outcome.value)
                except StopIteration as stop:
                    self._settle(record, TaskStatus.COMPLETED, Ok(stop.value))
                    return
                except TaskCancelledError as exc:
                    if record.cancel_requested:
                        self._settle_cancelled(record)
                    else:
                        self._settle(record, TaskStatus.FAILED, Err(exc))
                    return
                except Exception as exc:
                    self._settle(record, TaskStatus.FAILED, Err(exc))
                    return

                if record.cancel_requested:
                    self._finish_cancel(record)
                    return

                action = self._dispatch(record, effect)

                if record.is_terminal:
                    return
                if record.cancel_requested:
                    self._finish_cancel(record)
                    return
                if isinstance(action, Resume):
                    outcome = Ok(action.value)
                elif isinstance(action, ResumeError):
                    outcome = Err(action.error)
                elif isinstance(action, Fail):
                    self._close_generator(record)
                    self._settle(record, TaskStatus.FAILED, Err(action.error))
                    return
                else:
                    record.status = TaskStatus.SUSPENDED
                    record.waiting_on = action.waiting_on
                    record.release = action.release
                    return
        finally:
            self._running.remove(record.id)

    def _dispatch(self, record: TaskRecord, effect: Any) -> Action:
        handler = lookup_handler(self.handlers, effect)
        if handler is None:
            logger.error("Task %s (%s) yielded an unhandled value %r", record.id, record.name, effect)
            return Fail(UnmatchedEffectError(effect))
        record.epoch += 1
        if DEBUG_EFFECTS:
            logger.debug("Task %s (%s) dispatching %r", record.id, record.name, effect)
        self._notify(EffectDispatched(record.id, effect, self.clock.now()))
        try:
            return handler(effect, HandlerContext(self, record))
        except Exception as exc:
            logger.debug("Handler for %s raised %r", type(effect).__name__, exc)
            return ResumeError(exc)

    def _release(self, record: TaskRecord) -> None:
        release, record.release = record.release, None
        if release is None:
            return
        try:
            release()
        except Exception:
            logger.warning("Releasing the suspension of task %s (%s) failed", record.id, record.name, exc_info=True)

    def _finish_cancel(self, record: TaskRecord) -> None:
        """Deliver the cancellation signal and let the process clean up.

        Only synchronous effects are interpreted while unwinding; a process
        that tries to suspend is closed.
        """
        self._running.append(record.id)
        try:
            if not record.started:
                self._close_generator(record)
            else:
                self._unwind(record)
        finally:
            self._running.remove(record.id)
        self._settle_cancelled(record)

    def _unwind(self, record: TaskRecord) -> None:
        generator = record.generator
        try:
            effect = generator.throw(TaskCancelledError(task_id=record.id))
            while True:
                if not isinstance(effect, CLEANUP_EFFECTS):
                    logger.warning(
                        "Task %s (%s) yielded %r while being cancelled; closing it",
                        record.id,
                        record.name,
                        effect,
                    )
                    self._close_generator(record)
                    return
                action = self._dispatch(record, effect)
                if isinstance(action, Resume):
                    effect = generator.send(action.value)
                elif isinstance(action, ResumeError):
                    effect = generator.throw(action.error)
                else:
                    self._close_generator(record)
                    return
        except (StopIteration, TaskCancelledError):
            return
        except Exception:
            logger.warning(
                "Task %s (%s) raised during cancellation cleanup", record.id, record.name, exc_info=True
            )

    def _close_generator(self, record: TaskRecord) -> None:
        try:
            record.generator.close()
        except Exception:
            logger.warning("Closing task %s (%s) raised", record.id, record.name, exc_info=True)

    def _settle_cancelled(self, record: TaskRecord) -> None:
        error = TaskCancelledError(f"Task {record.id} ({record.name}) was cancelled", task_id=record.id)
        self._settle(record, TaskStatus.CANCELLED, Err(error))

    def _settle(self, record: TaskRecord, status: TaskStatus, outcome: Result[Any]) -> None:
        unobserved = not record.handle.has_listeners
        record.status = status
        record.waiting_on = None
        record.release = None
        self._tasks.pop(record.id, None)
        if record.parent_id is not None:
            parent = self._tasks.get(record.parent_id)
            if parent is not None and record.id in parent.children:
                parent.children.remove(record.id)

        record.handle._settle(status, outcome)

        now = self.clock.now()
        if status is TaskStatus.COMPLETED:
            logger.debug("Task %s (%s) completed", record.id, record.name)
            self._notify(TaskCompleted(record.id, outcome.ok(), now))
        elif status is TaskStatus.FAILED:
            error = outcome.err()
            assert error is not None
            if self.warn_on_unjoined_failures and not record.root and unobserved:
                logger.warning(
                    "Task %s (%s) failed and was not joined: %r",
                    record.id,
                    record.name,
                    error,
                    exc_info=(type(error), error, error.__traceback__),
                )
            else:
                logger.debug("Task %s (%s) failed: %r", record.id, record.name, error)
            self._notify(TaskFailed(record.id, error, now))
        else:
            logger.debug("Task %s (%s) cancelled", record.id, record.name)
            self._notify(TaskCancelled(record.id, now))

    def _notify(self, event: TaskEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.warning("Task observer %r raised", observer, exc_info=True)

    # ------------------------------------------------------------------
    # Store subscription
    # ------------------------------------------------------------------

    def _on_action(self, action: Any) -> None:
        for waiter in list(self._signal_waiters):
            if waiter not in self._signal_waiters:
                continue
            try:
                matched = matches(waiter.pattern, action)
            except Exception as exc:
                self._signal_waiters.remove(waiter)
                waiter.continuation.throw(exc)
                continue
            if matched:
                self._signal_waiters.remove(waiter)
                waiter.continuation.resume(action)


__all__ = ["AsyncBridge", "Continuation", "Observer", "Scheduler"]
