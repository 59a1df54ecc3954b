"""Invoke effect: call an operation and resume with its result."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from frozendict import frozendict

from ._validators import ensure_callable
from .base import EffectBase, create_effect_with_trace


@dataclass(frozen=True)
class InvokeEffect(EffectBase):
    """Call ``fn(*args, **kwargs)``.

    The operation may return a plain value, raise, return a generator or
    ``Program`` (run as a nested task), a ``Deferred`` or an awaitable.
    Failures reach the process as ``OperationFailure``.
    """

    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: frozendict[str, Any] = field(default_factory=frozendict)

    def __post_init__(self) -> None:
        ensure_callable(self.fn, name="fn")
        if not isinstance(self.kwargs, frozendict):
            object.__setattr__(self, "kwargs", frozendict(self.kwargs))

    def describe(self) -> str:
        name = getattr(self.fn, "__name__", None) or type(self.fn).__name__
        return f"Invoke({name})"


def Invoke(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> InvokeEffect:  # noqa: N802
    """Call an operation, suspending until its result is available.

    Example:
        @do
        def login(user, password):
            token = yield Invoke(auth_api.login, user, password)
            return token
    """
    return create_effect_with_trace(
        InvokeEffect(fn=fn, args=tuple(args), kwargs=frozendict(kwargs))
    )


def invoke(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> InvokeEffect:
    """Call an operation (lowercase alias)."""
    return create_effect_with_trace(
        InvokeEffect(fn=fn, args=tuple(args), kwargs=frozendict(kwargs))
    )


__all__ = ["Invoke", "InvokeEffect", "invoke"]
