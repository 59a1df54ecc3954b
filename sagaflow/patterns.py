"""Action patterns used by AwaitSignal and the combinators.

A pattern is one of:

- ``"*"``: matches every action
- ``str``: matches the action type (``action["type"]`` or ``action.type``)
- a class: matches by ``isinstance``
- a callable: used as a predicate
- a tuple/list of patterns: matches if any member matches
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

Pattern: TypeAlias = Any

WILDCARD = "*"


def action_type(action: Any) -> Any:
    """Return the type tag of an action, or None if it has none."""

    if isinstance(action, Mapping):
        return action.get("type")
    return getattr(action, "type", None)


def normalize_pattern(pattern: Pattern) -> Pattern:
    """Validate ``pattern`` and freeze list patterns into tuples."""

    if isinstance(pattern, (list, tuple)):
        if not pattern:
            raise ValueError("pattern sequence must not be empty")
        return tuple(normalize_pattern(item) for item in pattern)
    if isinstance(pattern, (str, type)) or callable(pattern):
        return pattern
    raise TypeError(
        "pattern must be a str, a type, a predicate or a sequence of those, "
        f"got {type(pattern).__name__}"
    )


def matches(pattern: Pattern, action: Any) -> bool:
    if isinstance(pattern, tuple):
        return any(matches(item, action) for item in pattern)
    if isinstance(pattern, str):
        return pattern == WILDCARD or action_type(action) == pattern
    if isinstance(pattern, type):
        return isinstance(action, pattern)
    return bool(pattern(action))


def describe_pattern(pattern: Pattern) -> str:
    if isinstance(pattern, tuple):
        return "|".join(describe_pattern(item) for item in pattern)
    if isinstance(pattern, str):
        return pattern
    return getattr(pattern, "__qualname__", None) or repr(pattern)


def matcher(pattern: Pattern) -> Callable[[Any], bool]:
    normalized = normalize_pattern(pattern)
    return lambda action: matches(normalized, action)


__all__ = [
    "Pattern",
    "WILDCARD",
    "action_type",
    "describe_pattern",
    "matcher",
    "matches",
    "normalize_pattern",
]
