"""ActionChannel effect: buffer store actions for later takes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sagaflow.channel import Buffer
from sagaflow.patterns import WILDCARD, Pattern, normalize_pattern

from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class ActionChannelEffect(EffectBase):
    """Create a channel that queues every dispatched action matching ``pattern``.

    Unlike AwaitSignal, no action is missed while the task is busy. Closing
    the channel unsubscribes it from the store.
    """

    pattern: Pattern = WILDCARD
    buffer: Buffer[Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", normalize_pattern(self.pattern))
        if self.buffer is not None and not isinstance(self.buffer, Buffer):
            raise TypeError(f"buffer must be Buffer, got {type(self.buffer).__name__}")


def ActionChannel(pattern: Pattern = WILDCARD, buffer: Buffer[Any] | None = None) -> ActionChannelEffect:  # noqa: N802
    """Buffer matching store actions into a new channel.

    Example:
        @do
        def serial_requests():
            chan = yield ActionChannel("REQUEST")
            while True:
                action = yield Take(chan)
                yield Invoke(handle_request, action)
    """
    return create_effect_with_trace(ActionChannelEffect(pattern=pattern, buffer=buffer))


def action_channel(pattern: Pattern = WILDCARD, buffer: Buffer[Any] | None = None) -> ActionChannelEffect:
    """Buffer matching store actions (lowercase alias)."""
    return create_effect_with_trace(ActionChannelEffect(pattern=pattern, buffer=buffer))


__all__ = ["ActionChannel", "ActionChannelEffect", "action_channel"]
