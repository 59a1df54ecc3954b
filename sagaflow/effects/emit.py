"""Emit effect: hand an action to the Store Bridge (or a channel)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sagaflow.channel import Channel

from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class EmitEffect(EffectBase):
    """Dispatch ``action`` through the store, or put it into ``channel``."""

    action: Any
    channel: Channel[Any] | None = None

    def __post_init__(self) -> None:
        if self.channel is not None and not isinstance(self.channel, Channel):
            raise TypeError(f"channel must be Channel, got {type(self.channel).__name__}")


def Emit(action: Any, channel: Channel[Any] | None = None) -> EmitEffect:  # noqa: N802
    """Emit an action; the task resumes immediately."""
    return create_effect_with_trace(EmitEffect(action=action, channel=channel))


def emit(action: Any, channel: Channel[Any] | None = None) -> EmitEffect:
    """Emit an action (lowercase alias)."""
    return create_effect_with_trace(EmitEffect(action=action, channel=channel))


__all__ = ["Emit", "EmitEffect", "emit"]
