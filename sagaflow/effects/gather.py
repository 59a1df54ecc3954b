"""All effect: run effects concurrently and collect every result."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from frozendict import frozendict

from ._validators import ensure_effect, ensure_str_keys
from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class AllEffect(EffectBase):
    """Runs every effect as a child task and yields their results.

    Results keep input order (a list), or the input keys when given a
    mapping (a dict). The first failure cancels the remaining children and
    is raised once.
    """

    effects: tuple[Any, ...] | frozendict[Any, Any]

    def __post_init__(self) -> None:
        effects = self.effects
        if isinstance(effects, Mapping):
            if not isinstance(effects, frozendict):
                effects = frozendict(effects)
                object.__setattr__(self, "effects", effects)
            ensure_str_keys(effects, name="All")
            items = effects.items()
        else:
            effects = tuple(effects)
            object.__setattr__(self, "effects", effects)
            items = enumerate(effects)
        for key, effect in items:
            ensure_effect(effect, name=f"All[{key!r}]")

    @property
    def is_mapping(self) -> bool:
        return isinstance(self.effects, Mapping)

    def labelled(self) -> list[tuple[Any, Any]]:
        if isinstance(self.effects, Mapping):
            return list(self.effects.items())
        return list(enumerate(self.effects))

    def describe(self) -> str:
        return f"All({len(self.effects)})"


def _normalize(effects: tuple[Any, ...]) -> tuple[Any, ...] | frozendict[Any, Any]:
    if len(effects) == 1 and isinstance(effects[0], Mapping):
        return frozendict(effects[0])
    if len(effects) == 1 and isinstance(effects[0], Sequence) and not isinstance(
        effects[0], (str, bytes)
    ):
        return tuple(effects[0])
    return tuple(effects)


def All(*effects: Any) -> AllEffect:  # noqa: N802
    """Run effects concurrently; accepts ``All(e1, e2)``, ``All([e1, e2])`` or ``All({k: e})``."""
    return create_effect_with_trace(AllEffect(effects=_normalize(effects)))


def all_(*effects: Any) -> AllEffect:
    """Run effects concurrently (lowercase alias; ``all`` is a builtin)."""
    return create_effect_with_trace(AllEffect(effects=_normalize(effects)))


__all__ = [
    "All",
    "AllEffect",
    "all_",
]
