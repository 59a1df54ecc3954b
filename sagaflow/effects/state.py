"""ReadState effect: synchronous read of Store Bridge state."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ._validators import ensure_optional_callable
from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class ReadStateEffect(EffectBase):
    """Resume with ``selector(state, *args)``, or the whole state without a selector."""

    selector: Callable[..., Any] | None = None
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        ensure_optional_callable(self.selector, name="selector")


def ReadState(selector: Callable[..., Any] | None = None, *args: Any) -> ReadStateEffect:  # noqa: N802
    """Read external state.

    Example:
        @do
        def program():
            token = yield ReadState(lambda state: state["auth"]["token"])
            return token
    """
    return create_effect_with_trace(ReadStateEffect(selector=selector, args=tuple(args)))


def read_state(selector: Callable[..., Any] | None = None, *args: Any) -> ReadStateEffect:
    """Read external state (lowercase alias)."""
    return create_effect_with_trace(ReadStateEffect(selector=selector, args=tuple(args)))


__all__ = ["ReadState", "ReadStateEffect", "read_state"]
