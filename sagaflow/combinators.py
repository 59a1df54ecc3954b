"""Watcher loops built from the primitive effects.

Each helper returns a ``Spawn`` effect: yielding it starts the loop as an
attached child task and resumes with its TaskHandle. Cancel the handle (or
the parent) to stop watching.

Example:
    @do
    def root():
        yield take_every("FETCH_USER", fetch_user)
        yield take_latest("SEARCH", run_search)
        yield AwaitSignal("LOGOUT")
"""

from __future__ import annotations

from typing import Any

from sagaflow.channel import Buffer, Channel, buffers
from sagaflow.effects.channel import ActionChannel
from sagaflow.effects.race import Race
from sagaflow.effects.signal import AwaitSignal, Take
from sagaflow.effects.spawn import Cancel, Spawn, SpawnEffect
from sagaflow.effects.time import Delay
from sagaflow.patterns import Pattern, describe_pattern, normalize_pattern
from sagaflow.program import Program


def _next_signal(source: Pattern | Channel[Any]) -> Any:
    if isinstance(source, Channel):
        return Take(source)
    return AwaitSignal(source)


def _checked(source: Pattern | Channel[Any]) -> Pattern | Channel[Any]:
    if isinstance(source, Channel):
        return source
    return normalize_pattern(source)


def _source_name(source: Pattern | Channel[Any]) -> str:
    if isinstance(source, Channel):
        return source.name
    return describe_pattern(source)


def _signal_channel(source: Pattern | Channel[Any], buffer: Buffer[Any]):
    """Channel to take signals from, and whether the caller must close it."""
    if isinstance(source, Channel):
        return source, False
    chan = yield ActionChannel(source, buffer)
    return chan, True


def debounce_loop(seconds: float, source: Pattern | Channel[Any], process: Any, args: tuple[Any, ...]):
    """Spawn ``process(*args, action)`` after ``seconds`` without new signals."""
    chan, owned = yield from _signal_channel(source, buffers.latest())
    try:
        while True:
            action = yield Take(chan)
            while True:
                outcome = yield Race({"quiet": Delay(seconds), "signal": Take(chan)})
                if outcome.label == "quiet":
                    break
                action = outcome.value
            yield Spawn(process, *args, action)
    finally:
        if owned:
            chan.close()


def throttle_loop(seconds: float, source: Pattern | Channel[Any], process: Any, args: tuple[Any, ...]):
    """Spawn ``process(*args, action)``, then ignore signals for ``seconds``."""
    while True:
        action = yield _next_signal(source)
        yield Spawn(process, *args, action)
        yield Delay(seconds)


def _take_every_loop(source: Pattern | Channel[Any], process: Any, args: tuple[Any, ...]):
    chan, owned = yield from _signal_channel(source, buffers.expanding())
    try:
        while True:
            action = yield Take(chan)
            yield Spawn(process, *args, action)
    finally:
        if owned:
            chan.close()


def _take_latest_loop(source: Pattern | Channel[Any], process: Any, args: tuple[Any, ...]):
    chan, owned = yield from _signal_channel(source, buffers.expanding())
    last = None
    try:
        while True:
            action = yield Take(chan)
            if last is not None and not last.is_done():
                yield Cancel(last)
            last = yield Spawn(process, *args, action)
    finally:
        if owned:
            chan.close()

def _take_leading_loop(source: Pattern | Channel[Any], process: Any, args: tuple[Any, ...]):
    while True:
        action = yield _next_signal(source)
        # Runs inline: signals arriving meanwhile have no waiter.
        yield Program(process, (*args, action))


def take_every(pattern: Pattern | Channel[Any], process: Any, *args: Any) -> SpawnEffect:
    """Spawn ``process(*args, action)`` for every matching signal."""
    source = _checked(pattern)
    return Spawn(_take_every_loop, source, process, args, name=f"take_every:{_source_name(source)}")


def take_latest(pattern: Pattern | Channel[Any], process: Any, *args: Any) -> SpawnEffect:
    """Like ``take_every`` but cancels the previous worker if still running."""
    source = _checked(pattern)
    return Spawn(_take_latest_loop, source, process, args, name=f"take_latest:{_source_name(source)}")


def take_leading(pattern: Pattern | Channel[Any], process: Any, *args: Any) -> SpawnEffect:
    """Run one worker at a time; signals during a run are dropped."""
    source = _checked(pattern)
    return Spawn(_take_leading_loop, source, process, args, name=f"take_leading:{_source_name(source)}")


__all__ = [
    "debounce_loop",
    "take_every",
    "take_latest",
    "take_leading",
    "throttle_loop",
]
