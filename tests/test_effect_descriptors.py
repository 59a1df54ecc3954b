"""Tests for effect descriptor construction and validation."""

from __future__ import annotations

import pytest
from frozendict import frozendict

from sagaflow import (
    All,
    AwaitSignal,
    Cancel,
    Channel,
    Debounce,
    Delay,
    Emit,
    Invoke,
    Race,
    ReadState,
    Spawn,
    Take,
    Throttle,
    do,
)
from sagaflow.effects import (
    AllEffect,
    AwaitSignalEffect,
    DelayEffect,
    InvokeEffect,
    RaceEffect,
    SpawnEffect,
)


def worker(action):
    yield Emit(action)


class TestConstructors:
    def test_invoke_freezes_kwargs(self) -> None:
        effect = Invoke(max, 1, 2, key=abs)
        assert isinstance(effect, InvokeEffect)
        assert effect.args == (1, 2)
        assert isinstance(effect.kwargs, frozendict)
        assert effect.describe() == "Invoke(max)"

    def test_invoke_requires_callable(self) -> None:
        with pytest.raises(TypeError, match="fn must be callable"):
            Invoke(42)

    def test_emit_rejects_non_channel(self) -> None:
        with pytest.raises(TypeError, match="channel must be Channel"):
            Emit({"type": "X"}, channel=[])

    def test_await_signal_normalizes_list_pattern(self) -> None:
        effect = AwaitSignal(["A", "B"])
        assert isinstance(effect, AwaitSignalEffect)
        assert effect.pattern == ("A", "B")
        assert effect.describe() == "AwaitSignal(A|B)"

    def test_await_signal_rejects_empty_pattern(self) -> None:
        with pytest.raises(ValueError):
            AwaitSignal([])

    def test_take_describes_channel(self) -> None:
        chan = Channel(name="clicks")
        assert Take(chan).describe() == "Take(clicks)"

    def test_spawn_keeps_arguments(self) -> None:
        effect = Spawn(worker, {"type": "A"}, detached=True, name="w")
        assert isinstance(effect, SpawnEffect)
        assert effect.args == ({"type": "A"},)
        assert effect.detached is True
        assert effect.name == "w"

    def test_spawn_rejects_non_process(self) -> None:
        with pytest.raises(TypeError):
            Spawn(42)

    def test_cancel_without_task_targets_self(self) -> None:
        assert Cancel().task is None

    def test_delay_validation(self) -> None:
        assert isinstance(Delay(0), DelayEffect)
        with pytest.raises(ValueError):
            Delay(-1)
        with pytest.raises(TypeError):
            Delay(True)

    def test_read_state_selector_must_be_callable(self) -> None:
        with pytest.raises(TypeError, match="selector"):
            ReadState("count")

    def test_debounce_and_throttle_validate(self) -> None:
        assert Debounce(0.2, "SEARCH", worker).describe() == "Debounce(0.2, SEARCH)"
        assert Throttle(0.2, "SCROLL", worker).describe() == "Throttle(0.2, SCROLL)"
        with pytest.raises(ValueError):
            Throttle(-0.1, "SCROLL", worker)


class TestCombinatorDescriptors:
    def test_race_labels_from_mapping(self) -> None:
        effect = Race({"timeout": Delay(1.0), "data": Invoke(dict)})
        assert isinstance(effect, RaceEffect)
        assert list(effect.effects) == ["timeout", "data"]
        assert effect.describe() == "Race(timeout, data)"

    def test_race_positional_labels_are_indices(self) -> None:
        effect = Race(Delay(1.0), Delay(2.0))
        assert list(effect.effects) == [0, 1]

    def test_race_requires_effects(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            Race({})

    def test_race_rejects_plain_values(self) -> None:
        with pytest.raises(TypeError):
            Race({"a": 1})

    def test_all_accepts_list_and_mapping(self) -> None:
        listed = All([Delay(1.0), Delay(2.0)])
        assert isinstance(listed, AllEffect)
        assert not listed.is_mapping
        assert len(listed.effects) == 2

        mapped = All({"a": Delay(1.0)})
        assert mapped.is_mapping
        assert mapped.labelled() == [("a", mapped.effects["a"])]

    def test_all_accepts_programs(self) -> None:
        @do
        def child():
            return 1
            yield

        effect = All(child(), Delay(0))
        assert len(effect.effects) == 2


class TestCreationContext:
    def test_effects_record_creation_site(self) -> None:
        effect = Emit({"type": "X"})
        assert effect.created_at is not None
        assert effect.created_at.filename.endswith("test_effect_descriptors.py")
        assert effect.created_at.function == "test_effects_record_creation_site"

    def test_creation_context_is_ignored_by_equality(self) -> None:
        assert Delay(1.0) == Delay(1.0)
