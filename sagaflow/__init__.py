"""
sagaflow - generator-driven effect orchestration.

Processes are generator functions that yield Effect Descriptors. A scheduler
interprets each descriptor, runs concurrent tasks cooperatively on a single
thread, and propagates cancellation through the task tree.

Example:
    >>> from sagaflow import AwaitSignal, Emit, Invoke, SimulationRuntime, Store, do
    >>>
    >>> @do
    ... def login_flow():
    ...     action = yield AwaitSignal("LOGIN")
    ...     token = yield Invoke(api.login, action["user"])
    ...     yield Emit({"type": "LOGGED_IN", "token": token})
"""

from sagaflow.channel import END, Buffer, Channel, buffers, event_channel
from sagaflow.combinators import take_every, take_latest, take_leading
from sagaflow.deferred import Deferred
from sagaflow.effects import (
    ActionChannel,
    All,
    AwaitSignal,
    Cancel,
    Debounce,
    Delay,
    Emit,
    Invoke,
    Join,
    Race,
    RaceResult,
    ReadState,
    Spawn,
    SpawnDetached,
    Take,
    TaskHandle,
    Throttle,
    action_channel,
    all_,
    await_signal,
    cancel,
    debounce,
    delay,
    emit,
    invoke,
    join,
    race,
    read_state,
    spawn,
    take,
    throttle,
)
from sagaflow.errors import (
    BufferOverflow,
    ChannelClosed,
    DeadlockError,
    OperationFailure,
    SagaflowError,
    TaskCancelledError,
    TaskNotDoneError,
    UnmatchedEffectError,
)
from sagaflow.patterns import WILDCARD, matches
from sagaflow.program import DoFunction, Program, do
from sagaflow.result import Err, Ok, Result
from sagaflow.runtime import AsyncioRuntime, Scheduler, SimulationRuntime
from sagaflow.store import Store, StoreBridge
from sagaflow.types import EffectBase, EffectGenerator, TaskId, TaskStatus

__version__ = "0.1.0"

__all__ = [
    # Authoring
    "DoFunction",
    "EffectBase",
    "EffectGenerator",
    "Program",
    "do",
    # Effects
    "ActionChannel",
    "All",
    "AwaitSignal",
    "Cancel",
    "Debounce",
    "Delay",
    "Emit",
    "Invoke",
    "Join",
    "Race",
    "RaceResult",
    "ReadState",
    "Spawn",
    "SpawnDetached",
    "Take",
    "Throttle",
    "action_channel",
    "all_",
    "await_signal",
    "cancel",
    "debounce",
    "delay",
    "emit",
    "invoke",
    "join",
    "race",
    "read_state",
    "spawn",
    "take",
    "throttle",
    # Combinators
    "take_every",
    "take_latest",
    "take_leading",
    # Channels
    "END",
    "Buffer",
    "Channel",
    "buffers",
    "event_channel",
    # Tasks and results
    "Deferred",
    "Err",
    "Ok",
    "Result",
    "TaskHandle",
    "TaskId",
    "TaskStatus",
    # Store
    "Store",
    "StoreBridge",
    "WILDCARD",
    "matches",
    # Runtimes
    "AsyncioRuntime",
    "Scheduler",
    "SimulationRuntime",
    # Errors
    "BufferOverflow",
    "ChannelClosed",
    "DeadlockError",
    "OperationFailure",
    "SagaflowError",
    "TaskCancelledError",
    "TaskNotDoneError",
    "UnmatchedEffectError",
]
