"""Clocks used by the scheduler for Delay timers.

``SimClock`` keeps virtual time in a min-heap of timers ordered by deadline
and insertion sequence; the simulation runtime advances it explicitly.
``AsyncioClock`` delegates to the running event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` after ``delay`` seconds; returns a canceller."""
        ...


def _coerce_finite_float(value: float, *, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be float, got {type(value).__name__}")
    coerced = float(value)
    if math.isnan(coerced) or math.isinf(coerced):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return coerced


@dataclass(eq=False)
class TimerEntry:
    deadline: float
    sequence: int
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class TimeQueue:
    """Min-heap of timers; cancelled entries are skipped lazily."""

    def __init__(self) -> None:
        self._sequence = 0
        self._items: list[tuple[float, int, TimerEntry]] = []

    def push(self, deadline: float, callback: Callable[[], None]) -> TimerEntry:
        self._sequence += 1
        entry = TimerEntry(deadline=deadline, sequence=self._sequence, callback=callback)
        heapq.heappush(self._items, (deadline, self._sequence, entry))
        return entry

    def peek(self) -> TimerEntry | None:
        while self._items and self._items[0][2].cancelled:
            heapq.heappop(self._items)
        if not self._items:
            return None
        return self._items[0][2]

    def pop(self) -> TimerEntry:
        if self.peek() is None:
            raise IndexError("pop from an empty TimeQueue")
        return heapq.heappop(self._items)[2]

    def __len__(self) -> int:
        return sum(1 for _, _, entry in self._items if not entry.cancelled)


class SimClock:
    """Virtual clock; time only moves when the owner advances it."""

    def __init__(self, start_time: float = 0.0) -> None:
        self._current_time = _coerce_finite_float(start_time, name="start_time")
        self._timers = TimeQueue()

    def now(self) -> float:
        return self._current_time

    def call_later(self, delay: float, callback: Callable[[], None]) -> Callable[[], None]:
        delay = _coerce_finite_float(delay, name="delay")
        if delay < 0.0:
            raise ValueError("delay seconds must be >= 0")
        entry = self._timers.push(self._current_time + delay, callback)
        return entry.cancel

    def pop_due(self, until: float) -> TimerEntry | None:
        """Pop the earliest timer due at or before ``until`` and move time to it."""
        entry = self._timers.peek()
        if entry is None or entry.deadline > until:
            return None
        self._timers.pop()
        self.advance_to(entry.deadline)
        return entry

    def pop_next(self) -> TimerEntry | None:
        """Pop the earliest pending timer and move time to its deadline."""
        entry = self._timers.peek()
        if entry is None:
            return None
        self._timers.pop()
        self.advance_to(entry.deadline)
        return entry

    def advance_to(self, target_time: float) -> float:
        target = _coerce_finite_float(target_time, name="target_time")
        if target > self._current_time:
            self._current_time = target
        return self._current_time

    @property
    def pending_timers(self) -> int:
        return len(self._timers)


class AsyncioClock:
    """Wall clock backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> Callable[[], None]:
        handle = self._loop.call_later(delay, callback)
        return handle.cancel


__all__ = [
    "AsyncioClock",
    "Clock",
    "SimClock",
    "TimeQueue",
    "TimerEntry",
]
