"""Time effects.

Behavior varies by runtime:
- AsyncioRuntime: real wall-clock wait via the event loop
- SimulationRuntime: virtual clock, advances instantly to the next timer

Usage:
    @do
    def my_program():
        yield Delay(5.0)  # Wait 5 seconds
        return "done"
"""

from __future__ import annotations

from dataclasses import dataclass

from ._validators import ensure_duration
from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class DelayEffect(EffectBase):
    """Suspend for ``seconds``; only cancellation ends the wait early.

    Args:
        seconds: Duration to wait in seconds. Must be non-negative.
    """

    seconds: float

    def __post_init__(self) -> None:
        ensure_duration(self.seconds, name="seconds")

    def describe(self) -> str:
        return f"Delay({self.seconds})"


def Delay(seconds: float) -> DelayEffect:  # noqa: N802
    """Wait for a specified duration.

    Args:
        seconds: Duration to wait in seconds.

    Returns:
        An effect that, when yielded, causes the task to wait.
    """
    return create_effect_with_trace(DelayEffect(seconds=seconds))


def delay(seconds: float) -> DelayEffect:
    """Wait for a specified duration (lowercase alias)."""
    return create_effect_with_trace(DelayEffect(seconds=seconds))


__all__ = ["Delay", "DelayEffect", "delay"]
