"""Channels bridge external asynchronous sources into the take/AwaitSignal model.

A Channel queues items put into it until a task takes them. Takers are served
oldest first and items are delivered in FIFO order, unless the channel uses a
latest-wins buffer (``buffers.sliding`` / ``buffers.latest``).

Usage:
    def ticker(emit):
        timer = start_timer(lambda: emit("tick"))
        return timer.stop

    @do
    def watch():
        chan = event_channel(ticker, buffers.latest())
        try:
            while True:
                tick = yield Take(chan)
                ...
        finally:
            chan.close()
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from itertools import count
from typing import Any, Generic, Literal, TypeVar

from sagaflow.errors import BufferOverflow, ChannelClosed
from sagaflow.result import Err, Ok, Result

T = TypeVar("T")

logger = logging.getLogger(__name__)

OverflowPolicy = Literal["raise", "drop", "slide"]

_ids = count(1)


class _End:
    __slots__ = ()

    def __repr__(self) -> str:
        return "END"


END: Any = _End()
"""Sentinel an external source emits to close its event channel."""

_EMPTY = object()


class Buffer(Generic[T]):
    """Bounded or unbounded item queue with an overflow policy."""

    def __init__(self, limit: int | None = None, overflow: OverflowPolicy = "raise") -> None:
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        self.limit = limit
        self.overflow = overflow
        self._items: deque[T] = deque()

    def put(self, item: T) -> None:
        if self.limit is None or len(self._items) < self.limit:
            self._items.append(item)
            return
        if self.overflow == "raise":
            raise BufferOverflow(f"Channel buffer overflow (limit={self.limit})")
        if self.overflow == "slide" and self.limit > 0:
            self._items.popleft()
            self._items.append(item)
            return
        logger.debug("dropping item %r: buffer full (limit=%s)", item, self.limit)

    def take_matching(self, predicate: Callable[[T], bool] | None = None) -> Any:
        for index, item in enumerate(self._items):
            if predicate is None or predicate(item):
                del self._items[index]
                return item
        return _EMPTY

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Buffer(limit={self.limit}, overflow={self.overflow!r}, size={len(self)})"


class buffers:  # noqa: N801 - namespace mirrors the effect-library spelling
    """Buffer factories."""

    @staticmethod
    def none() -> Buffer[Any]:
        """No buffering: items put without a waiting taker are dropped."""
        return Buffer(limit=0, overflow="drop")

    @staticmethod
    def fixed(limit: int = 10) -> Buffer[Any]:
        """Holds up to ``limit`` items and raises ``BufferOverflow`` beyond it."""
        return Buffer(limit=limit, overflow="raise")

    @staticmethod
    def dropping(limit: int) -> Buffer[Any]:
        """Holds up to ``limit`` items and drops new ones when full."""
        return Buffer(limit=limit, overflow="drop")

    @staticmethod
    def sliding(limit: int) -> Buffer[Any]:
        """Holds the ``limit`` most recent items, discarding the oldest."""
        return Buffer(limit=limit, overflow="slide")

    @staticmethod
    def expanding() -> Buffer[Any]:
        """Unbounded FIFO queue."""
        return Buffer(limit=None)

    @staticmethod
    def latest() -> Buffer[Any]:
        """Latest-wins: a pending item is replaced by the next one."""
        return Buffer(limit=1, overflow="slide")


@dataclass
class _Taker:
    callback: Callable[[Result[Any]], None]
    predicate: Callable[[Any], bool] | None


class Channel(Generic[T]):
    """FIFO mailbox between item producers and tasks that take from it."""

    def __init__(
        self,
        buffer: Buffer[T] | None = None,
        *,
        name: str | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.id = next(_ids)
        self.name = name or f"channel-{self.id}"
        self._buffer: Buffer[T] = buffer if buffer is not None else buffers.expanding()
        self._takers: deque[_Taker] = deque()
        self._closed = False
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def waiting_takers(self) -> int:
        return len(self._takers)

    def put(self, item: T) -> None:
        """Deliver ``item`` to the oldest matching taker or buffer it."""

        if item is END:
            self.close()
            return
        if self._closed:
            logger.debug("%s is closed; ignoring %r", self.name, item)
            return
        for taker in self._takers:
            if taker.predicate is None or taker.predicate(item):
                self._takers.remove(taker)
                taker.callback(Ok(item))
                return
        self._buffer.put(item)

    def take(
        self,
        callback: Callable[[Result[T]], None],
        predicate: Callable[[T], bool] | None = None,
    ) -> Callable[[], None]:
        """Register ``callback`` for the next item; returns a canceller.

        The callback runs immediately when a buffered item is available or
        when the channel is already closed and drained.
        """

        item = self._buffer.take_matching(predicate)
        if item is not _EMPTY:
            callback(Ok(item))
            return _noop
        if self._closed:
            callback(Err(ChannelClosed(f"{self.name} is closed")))
            return _noop

        taker = _Taker(callback=callback, predicate=predicate)
        self._takers.append(taker)

        def cancel() -> None:
            if taker in self._takers:
                self._takers.remove(taker)

        return cancel

    def close(self) -> None:
        """Close the channel and fail every waiting taker with ChannelClosed."""

        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()
        takers, self._takers = self._takers, deque()
        for taker in takers:
            taker.callback(Err(ChannelClosed(f"{self.name} is closed")))

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Channel({self.name}, {state}, buffered={len(self)})"


def _noop() -> None:
    return None


def event_channel(
    subscribe: Callable[[Callable[[Any], None]], Callable[[], None]],
    buffer: Buffer[Any] | None = None,
    *,
    name: str | None = None,
) -> Channel[Any]:
    """Create a channel fed by an external source.

    ``subscribe`` receives an ``emit`` callback and returns an unsubscribe
    function. Emitting ``END`` closes the channel; closing the channel calls
    the unsubscribe function.
    """

    unsubscribe: list[Callable[[], None]] = []

    def on_close() -> None:
        if unsubscribe:
            unsubscribe.pop()()

    channel: Channel[Any] = Channel(buffer, name=name, on_close=on_close)
    result = subscribe(channel.put)
    if not callable(result):
        raise TypeError(
            f"event_channel subscriber must return an unsubscribe function, got {type(result).__name__}"
        )
    if channel.closed:
        # The source emitted END during subscription.
        result()
    else:
        unsubscribe.append(result)
    return channel


__all__ = [
    "Buffer",
    "Channel",
    "END",
    "buffers",
    "event_channel",
]
