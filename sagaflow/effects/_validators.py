"""Runtime validators for effect attribute type checking."""

from __future__ import annotations

from collections.abc import Mapping

from sagaflow.program import is_process
from sagaflow.types import EffectBase


def _type_name(value: object) -> str:
    return type(value).__name__


def ensure_callable(value: object, *, name: str) -> None:
    if not callable(value):
        raise TypeError(f"{name} must be callable, got {_type_name(value)}")


def ensure_optional_callable(value: object | None, *, name: str) -> None:
    if value is not None and not callable(value):
        raise TypeError(f"{name} must be callable or None, got {_type_name(value)}")


def ensure_process(value: object, *, name: str) -> None:
    if not is_process(value):
        raise TypeError(
            f"{name} must be a Program, generator or generator function, got {_type_name(value)}"
        )


def ensure_effect(value: object, *, name: str) -> None:
    from sagaflow.program import Program

    if not isinstance(value, (EffectBase, Program)):
        raise TypeError(f"{name} must be an Effect or Program, got {_type_name(value)}")


def ensure_duration(value: object, *, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number of seconds, got {_type_name(value)}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def ensure_str_keys(value: Mapping[object, object], *, name: str) -> None:
    for key in value:
        if not isinstance(key, (str, int)):
            raise TypeError(f"{name} labels must be str or int, got {_type_name(key)}")


__all__ = [
    "ensure_callable",
    "ensure_duration",
    "ensure_effect",
    "ensure_optional_callable",
    "ensure_process",
    "ensure_str_keys",
]
