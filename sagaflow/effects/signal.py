"""Signal effects: wait for a matching action or take from a channel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sagaflow.channel import Channel
from sagaflow.patterns import WILDCARD, Pattern, describe_pattern, normalize_pattern

from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class AwaitSignalEffect(EffectBase):
    """Suspend until an action matching ``pattern`` arrives.

    Without a channel the wait is a broadcast subscription to every action
    dispatched through the store. With a channel, the oldest buffered
    matching item is taken (single consumer).
    """

    pattern: Pattern = WILDCARD
    channel: Channel[Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", normalize_pattern(self.pattern))
        if self.channel is not None and not isinstance(self.channel, Channel):
            raise TypeError(f"channel must be Channel, got {type(self.channel).__name__}")

    def describe(self) -> str:
        if self.channel is not None:
            return f"Take({self.channel.name})"
        return f"AwaitSignal({describe_pattern(self.pattern)})"


def AwaitSignal(  # noqa: N802
    pattern: Pattern = WILDCARD, channel: Channel[Any] | None = None
) -> AwaitSignalEffect:
    """Wait for the next action matching ``pattern``.

    Example:
        @do
        def watch_logout():
            action = yield AwaitSignal("LOGOUT")
            return action
    """
    return create_effect_with_trace(AwaitSignalEffect(pattern=pattern, channel=channel))


def await_signal(
    pattern: Pattern = WILDCARD, channel: Channel[Any] | None = None
) -> AwaitSignalEffect:
    """Wait for the next action matching ``pattern`` (lowercase alias)."""
    return create_effect_with_trace(AwaitSignalEffect(pattern=pattern, channel=channel))


def Take(channel: Channel[Any], pattern: Pattern = WILDCARD) -> AwaitSignalEffect:  # noqa: N802
    """Take the next item from ``channel``."""
    return create_effect_with_trace(AwaitSignalEffect(pattern=pattern, channel=channel))


def take(channel: Channel[Any], pattern: Pattern = WILDCARD) -> AwaitSignalEffect:
    """Take the next item from ``channel`` (lowercase alias)."""
    return create_effect_with_trace(AwaitSignalEffect(pattern=pattern, channel=channel))


__all__ = [
    "AwaitSignal",
    "AwaitSignalEffect",
    "Take",
    "await_signal",
    "take",
]
