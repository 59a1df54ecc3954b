"""Tests for Race and All."""

from __future__ import annotations

import pytest

from sagaflow import (
    All,
    AwaitSignal,
    Delay,
    Emit,
    EffectGenerator,
    Invoke,
    Race,
    RaceResult,
    SimulationRuntime,
    Store,
    TaskStatus,
    do,
)
from sagaflow.runtime import TaskCancelled, TaskCompleted, TaskCreated


def _track(runtime: SimulationRuntime) -> dict[str, list[int]]:
    tracked: dict[str, list[int]] = {"created": [], "completed": [], "cancelled": []}

    def observe(event: object) -> None:
        if isinstance(event, TaskCreated):
            tracked["created"].append(event.task_id)
        elif isinstance(event, TaskCompleted):
            tracked["completed"].append(event.task_id)
        elif isinstance(event, TaskCancelled):
            tracked["cancelled"].append(event.task_id)

    runtime.add_observer(observe)
    return tracked


@do
def sleeper(seconds: float, value: str) -> EffectGenerator[str]:
    yield Delay(seconds)
    return value


@do
def failing_after(seconds: float, message: str) -> EffectGenerator[None]:
    yield Delay(seconds)
    raise RuntimeError(message)


class TestRace:
    def test_first_to_settle_wins_and_others_are_cancelled(self, runtime: SimulationRuntime) -> None:
        tracked = _track(runtime)

        @do
        def program() -> EffectGenerator[RaceResult[str]]:
            return (
                yield Race(
                    {
                        "slow": sleeper(3.0, "slow"),
                        "fast": sleeper(1.0, "fast"),
                        "slower": Delay(5.0),
                    }
                )
            )

        result = runtime.run(program())

        assert result == RaceResult("fast", "fast")
        assert runtime.now() == pytest.approx(1.0)
        root, *children = tracked["created"]
        slow, fast, slower = children
        assert set(tracked["completed"]) == {fast, root}
        assert set(tracked["cancelled"]) == {slow, slower}
        assert runtime.clock.pending_timers == 0

    def test_failing_winner_fails_the_race(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[str]:
            try:
                yield Race({"bad": failing_after(1.0, "bad branch"), "slow": Delay(2.0)})
            except RuntimeError as exc:
                return str(exc)
            return "unreachable"

        assert runtime.run(program()) == "bad branch"
        assert runtime.now() == pytest.approx(1.0)

    def test_race_on_signals(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[RaceResult[object]]:
            return (yield Race({"cancel": AwaitSignal("CANCEL"), "done": AwaitSignal("DONE")}))

        handle = runtime.schedule(program())
        runtime.dispatch({"type": "DONE"})

        assert handle.result() == RaceResult("done", {"type": "DONE"})

    def test_cancelling_racer_cancels_every_branch(self, runtime: SimulationRuntime) -> None:
        tracked = _track(runtime)

        @do
        def program() -> EffectGenerator[None]:
            yield Race({"a": Delay(1.0), "b": AwaitSignal("B")})

        handle = runtime.schedule(program())
        handle.cancel()
        runtime.advance(2.0)
        runtime.dispatch({"type": "B"})

        assert handle.status is TaskStatus.CANCELLED
        assert sorted(tracked["cancelled"]) == sorted(tracked["created"])
        assert tracked["completed"] == []


class TestAll:
    def test_results_keep_input_order(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[list[str]]:
            return (yield All(sleeper(3.0, "a"), sleeper(1.0, "b"), sleeper(2.0, "c")))

        assert runtime.run(program()) == ["a", "b", "c"]
        assert runtime.now() == pytest.approx(3.0)

    def test_mapping_input_returns_dict(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[dict[str, object]]:
            return (yield All({"user": Invoke(lambda: "ada"), "wait": Delay(0.5)}))

        assert runtime.run(program()) == {"user": "ada", "wait": None}

    def test_empty_all_resumes_immediately(self, runtime: SimulationRuntime) -> None:
        @do
        def program() -> EffectGenerator[list[object]]:
            return (yield All([]))

        assert runtime.run(program()) == []

    def test_first_failure_cancels_siblings_and_fails_once(
        self, runtime: SimulationRuntime, store: Store
    ) -> None:
        tracked = _track(runtime)
        caught: list[str] = []

        @do
        def emitter() -> EffectGenerator[None]:
            yield Delay(2.0)
            yield Emit({"type": "LEAKED"})

        @do
        def program() -> EffectGenerator[None]:
            try:
                yield All(
                    sleeper(3.0, "late"),
                    failing_after(1.0, "first"),
                    failing_after(1.5, "second"),
                    emitter(),
                )
            except RuntimeError as exc:
                caught.append(str(exc))
            yield Delay(5.0)

        runtime.run(program())

        assert caught == ["first"]
        assert store.dispatched == []
        root, late, first, second, emit_task = tracked["created"]
        assert set(tracked["cancelled"]) == {late, second, emit_task}
        assert tracked["completed"] == [root]
