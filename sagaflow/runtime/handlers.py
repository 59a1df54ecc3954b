"""Handler functions for sagaflow effects.

This module provides:
- HandlerContext: context passed to handler functions
- Handler: protocol for handler functions
- default_handlers(): returns dict[type, Handler]

Handlers are plain functions that inspect an effect and return an Action:

    def handle_read_state(effect, ctx):
        return Resume(ctx.store.read_state(effect.selector, *effect.args))

    def default_handlers():
        return {ReadStateEffect: handle_read_state, ...}

A handler that raises is treated as ``ResumeError`` with that exception.
Handlers that suspend create a Continuation with ``ctx.continuation()`` and
return ``Suspend`` with a release function for cancellation.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

from sagaflow.channel import Channel, event_channel
from sagaflow.deferred import Deferred
from sagaflow.effects.channel import ActionChannelEffect
from sagaflow.effects.emit import EmitEffect
from sagaflow.effects.flow import DebounceEffect, ThrottleEffect
from sagaflow.effects.gather import AllEffect
from sagaflow.effects.invoke import InvokeEffect
from sagaflow.effects.race import RaceEffect, RaceResult
from sagaflow.effects.signal import AwaitSignalEffect
from sagaflow.effects.spawn import CancelEffect, JoinEffect, SpawnEffect, TaskHandle
from sagaflow.effects.state import ReadStateEffect
from sagaflow.effects.time import DelayEffect
from sagaflow.errors import OperationFailure, TaskCancelledError
from sagaflow.patterns import WILDCARD, describe_pattern, matcher
from sagaflow.program import Program, process_name
from sagaflow.result import Err, Ok, Result
from sagaflow.types import EffectBase

from .actions import Action, Resume, ResumeError, Suspend

if TYPE_CHECKING:
    from .scheduler import Continuation, Scheduler
    from .task import TaskRecord

# ============================================================================
# Handler Context
# ============================================================================


@dataclass(frozen=True)
class HandlerContext:
    """Context passed to handler functions.

    Handlers reach the store, clock and task tree through the scheduler and
    never step other tasks themselves.
    """

    scheduler: Scheduler
    task: TaskRecord

    @property
    def store(self) -> Any:
        return self.scheduler.store

    @property
    def clock(self) -> Any:
        return self.scheduler.clock

    def continuation(self) -> Continuation:
        """Resumption capability for the current suspension of this task."""
        return self.scheduler.continuation(self.task)

    def spawn_child(self, process: Any, *args: Any, name: str | None = None, **kwargs: Any) -> TaskHandle[Any]:
        return self.scheduler.spawn_child(self.task, process, args, kwargs, name=name)


class Handler(Protocol):
    def __call__(self, effect: Any, ctx: HandlerContext) -> Action: ...


HandlerTable: TypeAlias = dict[type, Handler]


# ============================================================================
# Helpers
# ============================================================================


def _outcome_of(handle: TaskHandle[Any]) -> Result[Any]:
    if handle.is_cancelled():
        return Err(TaskCancelledError(f"Task {handle.id} ({handle.name}) was cancelled", task_id=handle.id))
    assert handle.outcome is not None
    return handle.outcome


def _action_for(outcome: Result[Any]) -> Action:
    if isinstance(outcome, Ok):
        return Resume(outcome.value)
    return ResumeError(outcome.error)


def _wait_for(ctx: HandlerContext, handle: TaskHandle[Any], waiting_on: str) -> Action:
    if handle.is_done():
        return _action_for(_outcome_of(handle))
    k = ctx.continuation()
    remove = handle.add_done_callback(lambda done: k.deliver(_outcome_of(done)))
    return Suspend(waiting_on, remove)


def _run_nested(ctx: HandlerContext, process: Any) -> Action:
    """Run a generator or Program as an attached child and wait for it."""
    handle = ctx.spawn_child(process, name=process_name(process))
    return _wait_for(ctx, handle, f"Call({handle.name})")


def _run_effect(effect: Any) -> Any:
    """Process that interprets a single effect and returns its result."""
    return (yield effect)


def _child_process(effect: Any) -> Any:
    if isinstance(effect, Program):
        return effect
    return _run_effect(effect)


# ============================================================================
# Invoke / Emit / ReadState
# ============================================================================


def handle_invoke(effect: InvokeEffect, ctx: HandlerContext) -> Action:
    try:
        result = effect.fn(*effect.args, **effect.kwargs)
    except Exception as exc:
        return ResumeError(OperationFailure(exc, effect.fn))

    if isinstance(result, Program) or inspect.isgenerator(result):
        return _run_nested(ctx, result)

    if isinstance(result, Deferred):
        return _wait_for_deferred(ctx, result, effect)

    if inspect.isawaitable(result):
        bridge = ctx.scheduler.async_bridge
        if bridge is None:
            if inspect.iscoroutine(result):
                result.close()
            return ResumeError(
                TypeError(
                    f"{effect.describe()} returned an awaitable; run it under AsyncioRuntime"
                )
            )
        k = ctx.continuation()

        def on_outcome(outcome: Result[Any]) -> None:
            if isinstance(outcome, Err):
                k.throw(OperationFailure(outcome.error, effect.fn))
            else:
                k.deliver(outcome)

        abort = bridge(result, on_outcome)
        return Suspend(effect.describe(), abort)

    return Resume(result)


def _wait_for_deferred(ctx: HandlerContext, deferred: Deferred[Any], effect: InvokeEffect) -> Action:
    if deferred.settled:
        outcome = deferred.outcome
        if isinstance(outcome, Err):
            return ResumeError(OperationFailure(outcome.error, effect.fn))
        return Resume(outcome.ok())

    k = ctx.continuation()

    def on_outcome(outcome: Result[Any]) -> None:
        if isinstance(outcome, Err):
            k.throw(OperationFailure(outcome.error, effect.fn))
        else:
            k.deliver(outcome)

    unsubscribe = deferred.subscribe(on_outcome)

    def release() -> None:
        unsubscribe()
        if not deferred.waiting:
            deferred.abort()

    return Suspend(effect.describe(), release)


def handle_program(effect: Program[Any], ctx: HandlerContext) -> Action:
    """Yielding a Program runs it to completion, like ``Invoke(program)``."""
    return _run_nested(ctx, effect)


def handle_emit(effect: EmitEffect, ctx: HandlerContext) -> Action:
    if effect.channel is not None:
        effect.channel.put(effect.action)
        return Resume(None)
    return Resume(ctx.store.dispatch(effect.action))


def handle_read_state(effect: ReadStateEffect, ctx: HandlerContext) -> Action:
    return Resume(ctx.store.read_state(effect.selector, *effect.args))


# ============================================================================
# Signals and channels
# ============================================================================


def handle_await_signal(effect: AwaitSignalEffect, ctx: HandlerContext) -> Action:
    k = ctx.continuation()
    if effect.channel is not None:
        predicate = None if effect.pattern == WILDCARD else matcher(effect.pattern)
        cancel_take = effect.channel.take(k.deliver, predicate)
        return Suspend(effect.describe(), cancel_take)
    remove = ctx.scheduler.add_signal_waiter(effect.pattern, k)
    return Suspend(effect.describe(), remove)


def handle_action_channel(effect: ActionChannelEffect, ctx: HandlerContext) -> Action:
    store = ctx.store
    accepts = matcher(effect.pattern)

    def subscribe(put: Callable[[Any], None]) -> Callable[[], None]:
        return store.subscribe(lambda action: put(action) if accepts(action) else None)

    channel: Channel[Any] = event_channel(
        subscribe, effect.buffer, name=f"actions:{describe_pattern(effect.pattern)}"
    )
    return Resume(channel)


# ============================================================================
# Tasks
# ============================================================================


def handle_spawn(effect: SpawnEffect, ctx: HandlerContext) -> Action:
    parent = None if effect.detached else ctx.task
    handle = ctx.scheduler.spawn_child(
        parent, effect.process, effect.args, effect.kwargs, name=effect.name
    )
    return Resume(handle)


def handle_join(effect: JoinEffect, ctx: HandlerContext) -> Action:
    return _wait_for(ctx, effect.task, effect.describe())


def handle_cancel(effect: CancelEffect, ctx: HandlerContext) -> Action:
    target = effect.task.id if effect.task is not None else ctx.task.id
    ctx.scheduler.cancel(target)
    return Resume(None)


def handle_race(effect: RaceEffect, ctx: HandlerContext) -> Action:
    k = ctx.continuation()
    children = {
        label: ctx.spawn_child(_child_process(child), name=f"race[{label}]")
        for label, child in effect.effects.items()
    }
    settled = False
    removers: list[Callable[[], None]] = []

    def on_done(label: Any, winner: TaskHandle[Any]) -> None:
        nonlocal settled
        if settled:
            return
        settled = True
        for other in children.values():
            if other is not winner:
                other.cancel()
        outcome = _outcome_of(winner)
        if isinstance(outcome, Err):
            k.throw(outcome.error)
        else:
            k.resume(RaceResult(label, outcome.value))

    for label, handle in children.items():
        removers.append(handle.add_done_callback(lambda done, label=label: on_done(label, done)))

    def release() -> None:
        nonlocal settled
        settled = True
        for remove in removers:
            remove()

    return Suspend(effect.describe(), release)


def handle_all(effect: AllEffect, ctx: HandlerContext) -> Action:
    labelled = effect.labelled()
    if not labelled:
        return Resume({} if effect.is_mapping else [])

    k = ctx.continuation()
    children = [
        (label, ctx.spawn_child(_child_process(child), name=f"all[{label}]"))
        for label, child in labelled
    ]
    results: dict[Any, Any] = {}
    settled = False
    removers: list[Callable[[], None]] = []

    def on_done(label: Any, done: TaskHandle[Any]) -> None:
        nonlocal settled
        if settled:
            return
        outcome = _outcome_of(done)
        if isinstance(outcome, Err):
            settled = True
            for _, other in children:
                if other is not done:
                    other.cancel()
            k.throw(outcome.error)
            return
        results[label] = outcome.value
        if len(results) == len(children):
            settled = True
            if effect.is_mapping:
                k.resume({key: results[key] for key, _ in children})
            else:
                k.resume([results[key] for key, _ in children])

    for label, handle in children:
        removers.append(handle.add_done_callback(lambda done, label=label: on_done(label, done)))

    def release() -> None:
        nonlocal settled
        settled = True
        for remove in removers:
            remove()

    return Suspend(effect.describe(), release)


# ============================================================================
# Time and rate limiting
# ============================================================================


def handle_delay(effect: DelayEffect, ctx: HandlerContext) -> Action:
    k = ctx.continuation()
    cancel_timer = ctx.clock.call_later(effect.seconds, lambda: k.resume(None))
    return Suspend(effect.describe(), cancel_timer)


def handle_debounce(effect: DebounceEffect, ctx: HandlerContext) -> Action:
    from sagaflow.combinators import debounce_loop

    handle = ctx.spawn_child(
        debounce_loop,
        effect.seconds,
        effect.pattern,
        effect.process,
        effect.args,
        name=effect.describe(),
    )
    return Resume(handle)


def handle_throttle(effect: ThrottleEffect, ctx: HandlerContext) -> Action:
    from sagaflow.combinators import throttle_loop

    handle = ctx.spawn_child(
        throttle_loop,
        effect.seconds,
        effect.pattern,
        effect.process,
        effect.args,
        name=effect.describe(),
    )
    return Resume(handle)


# ============================================================================
# Handler table
# ============================================================================

# Effects a task may still perform while unwinding from cancellation.
CLEANUP_EFFECTS: tuple[type, ...] = (EmitEffect, ReadStateEffect, CancelEffect)


def default_handlers() -> HandlerTable:
    return {
        InvokeEffect: handle_invoke,
        Program: handle_program,
        EmitEffect: handle_emit,
        ReadStateEffect: handle_read_state,
        AwaitSignalEffect: handle_await_signal,
        ActionChannelEffect: handle_action_channel,
        SpawnEffect: handle_spawn,
        JoinEffect: handle_join,
        CancelEffect: handle_cancel,
        RaceEffect: handle_race,
        AllEffect: handle_all,
        DelayEffect: handle_delay,
        DebounceEffect: handle_debounce,
        ThrottleEffect: handle_throttle,
    }


def lookup_handler(handlers: HandlerTable, value: Any) -> Handler | None:
    """Find the handler for ``value`` by walking its type's MRO."""
    if not isinstance(value, (EffectBase, Program)):
        return None
    for cls in type(value).__mro__:
        handler = handlers.get(cls)
        if handler is not None:
            return handler
    return None


__all__ = [
    "CLEANUP_EFFECTS",
    "Handler",
    "HandlerContext",
    "HandlerTable",
    "default_handlers",
    "lookup_handler",
]
