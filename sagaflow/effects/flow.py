"""Rate-limiting effects built on AwaitSignal, Delay, Spawn and Cancel.

Both effects start a helper loop as a child task and resume immediately with
its TaskHandle; cancel the handle to stop listening.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sagaflow.channel import Channel
from sagaflow.patterns import Pattern, describe_pattern, normalize_pattern

from ._validators import ensure_duration, ensure_process
from .base import EffectBase, create_effect_with_trace


def _normalize_source(source: Any) -> Any:
    if isinstance(source, Channel):
        return source
    return normalize_pattern(source)


@dataclass(frozen=True)
class DebounceEffect(EffectBase):
    """Run ``process(*args, action)`` once signals stop for ``seconds``.

    Each matching signal restarts the quiet period; only the latest action
    reaches the process.
    """

    seconds: float
    pattern: Pattern | Channel[Any]
    process: Any
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        ensure_duration(self.seconds, name="seconds")
        object.__setattr__(self, "pattern", _normalize_source(self.pattern))
        ensure_process(self.process, name="process")

    def describe(self) -> str:
        return f"Debounce({self.seconds}, {describe_pattern(self.pattern)})"


@dataclass(frozen=True)
class ThrottleEffect(EffectBase):
    """Run ``process(*args, action)`` at once, then ignore signals for ``seconds``."""

    seconds: float
    pattern: Pattern | Channel[Any]
    process: Any
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        ensure_duration(self.seconds, name="seconds")
        object.__setattr__(self, "pattern", _normalize_source(self.pattern))
        ensure_process(self.process, name="process")

    def describe(self) -> str:
        return f"Throttle({self.seconds}, {describe_pattern(self.pattern)})"


def Debounce(seconds: float, pattern: Pattern, process: Any, *args: Any) -> DebounceEffect:  # noqa: N802
    """Debounce matching signals.

    Example:
        @do
        def root():
            yield Debounce(0.3, "SEARCH_INPUT", run_search)
    """
    return create_effect_with_trace(
        DebounceEffect(seconds=seconds, pattern=pattern, process=process, args=tuple(args))
    )


def debounce(seconds: float, pattern: Pattern, process: Any, *args: Any) -> DebounceEffect:
    """Debounce matching signals (lowercase alias)."""
    return create_effect_with_trace(
        DebounceEffect(seconds=seconds, pattern=pattern, process=process, args=tuple(args))
    )


def Throttle(seconds: float, pattern: Pattern, process: Any, *args: Any) -> ThrottleEffect:  # noqa: N802
    """Throttle matching signals.

    Example:
        @do
        def root():
            yield Throttle(1.0, "SCROLL", record_scroll)
    """
    return create_effect_with_trace(
        ThrottleEffect(seconds=seconds, pattern=pattern, process=process, args=tuple(args))
    )


def throttle(seconds: float, pattern: Pattern, process: Any, *args: Any) -> ThrottleEffect:
    """Throttle matching signals (lowercase alias)."""
    return create_effect_with_trace(
        ThrottleEffect(seconds=seconds, pattern=pattern, process=process, args=tuple(args))
    )


__all__ = [
    "Debounce",
    "DebounceEffect",
    "Throttle",
    "ThrottleEffect",
    "debounce",
    "throttle",
]
