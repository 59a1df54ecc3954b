"""Tests for AwaitSignal broadcast matching, patterns and the Store Bridge."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from sagaflow import (
    AwaitSignal,
    Emit,
    EffectGenerator,
    ReadState,
    SimulationRuntime,
    Spawn,
    Store,
    StoreBridge,
    do,
    matches,
)
from sagaflow.patterns import action_type, normalize_pattern


@dataclass
class UserLoggedIn:
    user: str
    type: str = "USER_LOGGED_IN"


class TestPatterns:
    def test_string_matches_type_key_or_attribute(self) -> None:
        assert matches("A", {"type": "A"})
        assert matches("USER_LOGGED_IN", UserLoggedIn("ada"))
        assert not matches("A", {"type": "B"})
        assert action_type("no type") is None

    def test_wildcard_class_predicate_and_sequence(self) -> None:
        assert matches("*", object())
        assert matches(UserLoggedIn, UserLoggedIn("ada"))
        assert matches(lambda a: a.get("n", 0) > 2, {"n": 3})
        assert matches(("A", "B"), {"type": "B"})
        assert not matches(("A", "B"), {"type": "C"})

    def test_invalid_patterns(self) -> None:
        with pytest.raises(TypeError):
            normalize_pattern(3)
        with pytest.raises(ValueError):
            normalize_pattern(())


class TestAwaitSignal:
    def test_waiters_resume_in_registration_order(self, runtime: SimulationRuntime) -> None:
        order: list[str] = []

        @do
        def waiter(name: str) -> EffectGenerator[None]:
            yield AwaitSignal("PING")
            order.append(name)

        @do
        def root() -> EffectGenerator[None]:
            for name in ("first", "second", "third"):
                yield Spawn(waiter(name))
            yield AwaitSignal("STOP")

        runtime.schedule(root())
        runtime.dispatch({"type": "PING"})

        assert order == ["first", "second", "third"]

    def test_each_waiter_is_resumed_once(self, runtime: SimulationRuntime) -> None:
        received: list[int] = []

        @do
        def program() -> EffectGenerator[None]:
            action = yield AwaitSignal("TICK")
            received.append(action["n"])

        handle = runtime.schedule(program())

        def burst(action: dict) -> None:
            if action["type"] == "TICK" and action["n"] == 1:
                runtime.store.dispatch({"type": "TICK", "n": 2})

        runtime.store.subscribe(burst)
        runtime.dispatch({"type": "TICK", "n": 1})

        assert received == [1]
        assert handle.is_done()

    def test_actions_before_registration_are_missed(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[object]:
            return (yield AwaitSignal("READY"))

        runtime.dispatch({"type": "READY", "early": True})
        handle = runtime.schedule(program())
        assert not handle.is_done()

        runtime.dispatch({"type": "READY", "early": False})
        assert handle.result() == {"type": "READY", "early": False}

    def test_task_sees_actions_emitted_by_other_tasks(self, runtime: SimulationRuntime) -> None:
        @do
        def listener() -> EffectGenerator[object]:
            return (yield AwaitSignal(lambda action: action.get("type", "").startswith("SAVE")))

        @do
        def root() -> EffectGenerator[object]:
            task = yield Spawn(listener())
            yield Emit({"type": "IGNORED"})
            yield AwaitSignal("NEXT_TICK")
            return task

        handle = runtime.schedule(root())
        runtime.dispatch({"type": "NEXT_TICK"})
        listener_handle = handle.result()
        assert not listener_handle.is_done()

        runtime.dispatch({"type": "SAVE_DONE"})
        assert listener_handle.result() == {"type": "SAVE_DONE"}

    def test_raising_predicate_fails_waiting_task(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[None]:
            yield AwaitSignal(lambda action: action["missing"])

        handle = runtime.schedule(program())
        runtime.dispatch({"type": "ANY"})

        with pytest.raises(KeyError):
            handle.result()


class TestStore:
    def test_store_satisfies_bridge_protocol(self, store: Store) -> None:
        assert isinstance(store, StoreBridge)

    def test_nested_dispatch_is_applied_after_current_action(self) -> None:
        log: list[tuple[str, int]] = []

        def reducer(state: int, action: dict) -> int:
            return state + action.get("by", 0)

        store = Store(reducer, 0)

        def listener(action: dict) -> None:
            log.append((action["type"], store.state))
            if action["type"] == "FIRST":
                store.dispatch({"type": "SECOND", "by": 10})
                log.append(("after nested dispatch", store.state))

        store.subscribe(listener)
        store.dispatch({"type": "FIRST", "by": 1})

        assert log == [("FIRST", 1), ("after nested dispatch", 1), ("SECOND", 11)]

    def test_emit_is_visible_to_next_read_state(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[object]:
            yield Emit({"type": "LOGIN_SUCCESS", "payload": "ada"})
            return (yield ReadState(lambda state: state["user"]))

        assert runtime.run(program()) == "ada"

    def test_reducer_error_is_thrown_into_emitting_task(self) -> None:
        def reducer(state: object, action: dict) -> object:
            if action["type"] == "BAD":
                raise ValueError("rejected")
            return state

        runtime = SimulationRuntime(Store(reducer))

        @do
        def program() -> EffectGenerator[str]:
            try:
                yield Emit({"type": "BAD"})
            except ValueError:
                return "rejected"
            return "unreachable"

        assert runtime.run(program()) == "rejected"

    def test_dispatched_actions_are_only_kept_when_recording(self) -> None:
        quiet = Store()
        recording = Store(record=True)
        for target in (quiet, recording):
            target.dispatch({"type": "A"})
            target.dispatch({"type": "B"})

        assert quiet.dispatched == []
        assert [action["type"] for action in recording.dispatched] == ["A", "B"]

    def test_unsubscribe(self) -> None:
        store = Store()
        seen: list[object] = []
        unsubscribe = store.subscribe(seen.append)
        store.dispatch({"type": "A"})
        unsubscribe()
        unsubscribe()
        store.dispatch({"type": "B"})
        assert seen == [{"type": "A"}]
