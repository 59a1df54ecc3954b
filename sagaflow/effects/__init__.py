"""
Effect Descriptors for the sagaflow engine.

Every effect is an immutable dataclass; yielding it from a process asks the
scheduler to perform the operation it describes.
"""

from .base import EffectBase, create_effect_with_trace
from .channel import ActionChannel, ActionChannelEffect, action_channel
from .emit import Emit, EmitEffect, emit
from .flow import Debounce, DebounceEffect, Throttle, ThrottleEffect, debounce, throttle
from .gather import All, AllEffect, all_
from .invoke import Invoke, InvokeEffect, invoke
from .race import Race, RaceEffect, RaceResult, race
from .signal import AwaitSignal, AwaitSignalEffect, Take, await_signal, take
from .spawn import (
    Cancel,
    CancelEffect,
    Join,
    JoinEffect,
    Spawn,
    SpawnDetached,
    SpawnEffect,
    TaskHandle,
    cancel,
    join,
    spawn,
)
from .state import ReadState, ReadStateEffect, read_state
from .time import Delay, DelayEffect, delay

__all__ = [
    # Base
    "EffectBase",
    "create_effect_with_trace",
    # Invoke
    "Invoke",
    "InvokeEffect",
    "invoke",
    # Emit
    "Emit",
    "EmitEffect",
    "emit",
    # Signals and channels
    "ActionChannel",
    "ActionChannelEffect",
    "AwaitSignal",
    "AwaitSignalEffect",
    "Take",
    "action_channel",
    "await_signal",
    "take",
    # Tasks
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
    # Combinators
    "All",
    "AllEffect",
    "Race",
    "RaceEffect",
    "RaceResult",
    "all_",
    "race",
    # State
    "ReadState",
    "ReadStateEffect",
    "read_state",
    # Time
    "Delay",
    "DelayEffect",
    "delay",
    # Rate limiting
    "Debounce",
    "DebounceEffect",
    "Throttle",
    "ThrottleEffect",
    "debounce",
    "throttle",
]
