"""Tests for channels, buffers, event channels and ActionChannel."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from sagaflow import (
    END,
    ActionChannel,
    BufferOverflow,
    Channel,
    ChannelClosed,
    Delay,
    Emit,
    EffectGenerator,
    Err,
    Ok,
    SimulationRuntime,
    Take,
    TaskStatus,
    buffers,
    do,
    event_channel,
)


class FakeSource:
    """External source with a subscribe/unsubscribe contract."""

    def __init__(self) -> None:
        self.listeners: list[Callable[[Any], None]] = []
        self.unsubscribed = 0

    def subscribe(self, emit: Callable[[Any], None]) -> Callable[[], None]:
        self.listeners.append(emit)

        def unsubscribe() -> None:
            self.unsubscribed += 1
            self.listeners.remove(emit)

        return unsubscribe

    def emit(self, item: Any) -> None:
        for listener in list(self.listeners):
            listener(item)


class TestBuffers:
    def test_expanding_is_fifo(self) -> None:
        chan: Channel[int] = Channel()
        for item in (1, 2, 3):
            chan.put(item)
        received: list[Any] = []
        for _ in range(3):
            chan.take(received.append)
        assert received == [Ok(1), Ok(2), Ok(3)]

    def test_fixed_raises_on_overflow(self) -> None:
        chan: Channel[int] = Channel(buffers.fixed(1))
        chan.put(1)
        with pytest.raises(BufferOverflow):
            chan.put(2)

    def test_dropping_keeps_oldest(self) -> None:
        chan: Channel[int] = Channel(buffers.dropping(2))
        for item in (1, 2, 3):
            chan.put(item)
        received: list[Any] = []
        chan.take(received.append)
        chan.take(received.append)
        assert received == [Ok(1), Ok(2)]
        assert len(chan) == 0

    def test_sliding_keeps_newest(self) -> None:
        chan: Channel[int] = Channel(buffers.sliding(2))
        for item in (1, 2, 3):
            chan.put(item)
        received: list[Any] = []
        chan.take(received.append)
        chan.take(received.append)
        assert received == [Ok(2), Ok(3)]

    def test_latest_replaces_pending_item(self) -> None:
        chan: Channel[int] = Channel(buffers.latest())
        for item in (1, 2, 3):
            chan.put(item)
        received: list[Any] = []
        chan.take(received.append)
        assert received == [Ok(3)]

    def test_none_drops_without_taker(self) -> None:
        chan: Channel[int] = Channel(buffers.none())
        chan.put(1)
        assert len(chan) == 0
        received: list[Any] = []
        chan.take(received.append)
        chan.put(2)
        assert received == [Ok(2)]


class TestChannel:
    def test_takers_are_served_oldest_first(self) -> None:
        chan: Channel[str] = Channel()
        first: list[Any] = []
        second: list[Any] = []
        chan.take(first.append)
        chan.take(second.append)
        chan.put("a")
        assert first == [Ok("a")]
        assert second == []
        assert chan.waiting_takers == 1

    def test_predicate_take_skips_non_matching(self) -> None:
        chan: Channel[int] = Channel()
        chan.put(1)
        chan.put(2)
        received: list[Any] = []
        chan.take(received.append, lambda item: item % 2 == 0)
        assert received == [Ok(2)]
        assert len(chan) == 1

    def test_cancelled_taker_receives_nothing(self) -> None:
        chan: Channel[int] = Channel()
        received: list[Any] = []
        cancel = chan.take(received.append)
        cancel()
        chan.put(1)
        assert received == []
        assert len(chan) == 1

    def test_close_fails_waiting_takers(self) -> None:
        closed: list[bool] = []
        chan: Channel[int] = Channel(on_close=lambda: closed.append(True))
        received: list[Any] = []
        chan.take(received.append)
        chan.close()
        chan.close()

        assert closed == [True]
        assert len(received) == 1
        assert isinstance(received[0], Err)
        assert isinstance(received[0].error, ChannelClosed)

    def test_buffered_items_drain_after_close(self) -> None:
        chan: Channel[int] = Channel()
        chan.put(1)
        chan.put(END)
        chan.put(2)
        received: list[Any] = []
        chan.take(received.append)
        chan.take(received.append)
        assert received[0] == Ok(1)
        assert isinstance(received[1].error, ChannelClosed)


class TestEventChannel:
    def test_feeds_a_task_and_closes_on_end(self, runtime: SimulationRuntime) -> None:
        source = FakeSource()
        chan = event_channel(source.subscribe)
        seen: list[int] = []

        @do
        def consumer() -> EffectGenerator[str]:
            try:
                while True:
                    seen.append((yield Take(chan)))
            except ChannelClosed:
                return "closed"

        handle = runtime.schedule(consumer())
        source.emit(1)
        source.emit(2)
        runtime.run_until_idle()
        source.emit(END)
        runtime.run_until_idle()

        assert seen == [1, 2]
        assert handle.result() == "closed"
        assert source.unsubscribed == 1

    def test_cancelling_taker_deregisters(self, runtime: SimulationRuntime) -> None:
        source = FakeSource()
        chan = event_channel(source.subscribe)

        @do
        def consumer() -> EffectGenerator[None]:
            try:
                yield Take(chan)
            finally:
                chan.close()

        handle = runtime.schedule(consumer())
        assert chan.waiting_takers == 1

        handle.cancel()

        assert chan.waiting_takers == 0
        assert chan.closed
        assert source.unsubscribed == 1

    def test_subscriber_must_return_unsubscribe(self) -> None:
        with pytest.raises(TypeError, match="unsubscribe"):
            event_channel(lambda emit: None)

    def test_emit_into_channel(self, runtime: SimulationRuntime) -> None:
        chan: Channel[str] = Channel()

        @do
        def producer() -> EffectGenerator[None]:
            yield Emit("job-1", channel=chan)
            yield Emit("job-2", channel=chan)

        @do
        def consumer() -> EffectGenerator[list[str]]:
            yield Delay(1.0)
            return [(yield Take(chan)), (yield Take(chan))]

        runtime.schedule(producer())
        assert runtime.run(consumer()) == ["job-1", "job-2"]


class TestActionChannel:
    def test_buffers_actions_while_task_is_busy(self, runtime: SimulationRuntime) -> None:
        handled: list[int] = []

        @do
        def serial() -> EffectGenerator[None]:
            chan = yield ActionChannel("REQUEST")
            while True:
                action = yield Take(chan)
                yield Delay(1.0)
                handled.append(action["n"])

        handle = runtime.schedule(serial())
        for n in range(3):
            runtime.dispatch({"type": "REQUEST", "n": n})
        runtime.dispatch({"type": "OTHER", "n": 99})
        runtime.advance(2.5)

        assert handled == [0, 1]
        runtime.advance(1.0)
        assert handled == [0, 1, 2]
        assert handle.status is TaskStatus.SUSPENDED

    def test_closing_unsubscribes_from_store(self, runtime: SimulationRuntime) -> None:
        channels: list[Channel[Any]] = []

        @do
        def program() -> EffectGenerator[None]:
            chan = yield ActionChannel("*", buffers.expanding())
            channels.append(chan)
            chan.close()

        runtime.run(program())
        runtime.dispatch({"type": "AFTER_CLOSE"})

        assert len(channels[0]) == 0
