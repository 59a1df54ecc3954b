"""Tests for warnings about failed tasks nobody joined."""

from __future__ import annotations

import pytest

from sagaflow import (
    Delay,
    EffectGenerator,
    Join,
    SimulationRuntime,
    Spawn,
    SpawnDetached,
    Store,
    do,
)


@do
def failing_worker() -> EffectGenerator[None]:
    yield Delay(1.0)
    raise RuntimeError("worker exploded")


class TestUnjoinedTaskWarnings:
    def test_detached_failure_is_logged(
        self, runtime: SimulationRuntime, caplog_warning: pytest.LogCaptureFixture
    ) -> None:
        @do
        def program() -> EffectGenerator[str]:
            yield SpawnDetached(failing_worker())
            yield Delay(2.0)
            return "parent unaffected"

        assert runtime.run(program()) == "parent unaffected"
        messages = [r.getMessage() for r in caplog_warning.records]
        assert any("was not joined" in m and "worker exploded" in m for m in messages)

    def test_joined_failure_is_not_logged(
        self, runtime: SimulationRuntime, caplog_warning: pytest.LogCaptureFixture
    ) -> None:
        @do
        def program() -> EffectGenerator[str]:
            task = yield Spawn(failing_worker())
            try:
                yield Join(task)
            except RuntimeError:
                return "handled"
            return "unreachable"

        assert runtime.run(program()) == "handled"
        assert not any("was not joined" in r.getMessage() for r in caplog_warning.records)

    def test_root_failure_is_not_logged(
        self, runtime: SimulationRuntime, caplog_warning: pytest.LogCaptureFixture
    ) -> None:
        with pytest.raises(RuntimeError):
            runtime.run(failing_worker())
        assert caplog_warning.records == []

    def test_warning_can_be_disabled(
        self, store: Store, caplog_warning: pytest.LogCaptureFixture
    ) -> None:
        runtime = SimulationRuntime(store, warn_on_unjoined_failures=False)

        @do
        def program() -> EffectGenerator[None]:
            yield Spawn(failing_worker())
            yield Delay(2.0)

        runtime.run(program())
        assert caplog_warning.records == []
