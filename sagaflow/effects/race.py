"""Race effect: run labelled effects concurrently, keep the first to settle."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from frozendict import frozendict

from ._validators import ensure_effect, ensure_str_keys
from .base import EffectBase, create_effect_with_trace

T = TypeVar("T")


@dataclass(frozen=True)
class RaceResult(Generic[T]):
    """Winner of a race: its label and the value it produced."""

    label: Any
    value: T


@dataclass(frozen=True)
class RaceEffect(EffectBase):
    """Run every labelled effect as a child task.

    The first child to settle wins; every other child is cancelled. A failing
    winner makes the race fail with the same error.
    """

    effects: frozendict[Any, Any]

    def __post_init__(self) -> None:
        effects = self.effects
        if not isinstance(effects, frozendict):
            effects = frozendict(effects)
            object.__setattr__(self, "effects", effects)
        if not effects:
            raise ValueError("Race requires at least one effect")
        ensure_str_keys(effects, name="Race")
        for label, effect in effects.items():
            ensure_effect(effect, name=f"Race[{label!r}]")

    def describe(self) -> str:
        return f"Race({', '.join(str(label) for label in self.effects)})"


def _labelled(effects: tuple[Any, ...]) -> frozendict[Any, Any]:
    if len(effects) == 1 and isinstance(effects[0], Mapping):
        return frozendict(effects[0])
    return frozendict(enumerate(effects))


def Race(*effects: Any) -> RaceEffect:  # noqa: N802
    """Race labelled effects; positional effects are labelled by index.

    Example:
        @do
        def fetch_with_timeout():
            result = yield Race({"response": Invoke(fetch), "timeout": Delay(5.0)})
            if result.label == "timeout":
                raise TimeoutError()
            return result.value
    """
    return create_effect_with_trace(RaceEffect(effects=_labelled(effects)))


def race(*effects: Any) -> RaceEffect:
    """Race effects (lowercase alias)."""
    return create_effect_with_trace(RaceEffect(effects=_labelled(effects)))


__all__ = [
    "Race",
    "RaceEffect",
    "RaceResult",
    "race",
]
