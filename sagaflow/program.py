"""
Process authoring for the sagaflow engine.

A *process* is a generator function that yields Effect Descriptors. The
``@do`` decorator turns such a function into a factory of ``Program``
values: calling it binds the arguments without starting the generator, so
the same Program can be spawned, raced or yielded later.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Generator, Mapping
from functools import update_wrapper
from typing import Any, Generic, ParamSpec, TypeVar

P = ParamSpec("P")
T = TypeVar("T")


def _value_generator(value: T) -> Generator[Any, Any, T]:
    return value
    yield  # pragma: no cover - makes this function a generator


class Program(Generic[T]):
    """A process bound to its arguments, started lazily by a scheduler."""

    __slots__ = ("func", "args", "kwargs")

    def __init__(
        self,
        func: Callable[..., Any],
        args: tuple[Any, ...] = (),
        kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        if not callable(func):
            raise TypeError(f"Program requires a callable, got {type(func).__name__}")
        self.func = func
        self.args = tuple(args)
        self.kwargs = dict(kwargs or {})

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)

    def to_generator(self) -> Generator[Any, Any, T]:
        """Create a fresh generator for this program."""

        result = self.func(*self.args, **self.kwargs)
        if inspect.isgenerator(result):
            return result
        if isinstance(result, Program):
            return result.to_generator()
        return _value_generator(result)

    def __repr__(self) -> str:
        return f"Program({self.name})"


class DoFunction(Generic[P, T]):
    """Callable produced by ``@do``; calling it returns a ``Program``."""

    def __init__(self, func: Callable[P, Generator[Any, Any, T]]) -> None:
        self.original_func = func
        update_wrapper(self, func)

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> Program[T]:
        return Program(self.original_func, args, kwargs)

    def __repr__(self) -> str:
        return f"<do {self.original_func.__qualname__}>"


def do(func: Callable[P, Generator[Any, Any, T]]) -> DoFunction[P, T]:
    """Decorate a generator function so that calling it yields a ``Program``.

    Example:
        @do
        def fetch_user(user_id):
            user = yield Invoke(api.get_user, user_id)
            yield Emit({"type": "USER_LOADED", "payload": user})
            return user

        runtime.run(fetch_user(42))

    Unlike a bare generator object, a Program can be started more than once.
    """

    if not callable(func):
        raise TypeError(f"do() requires a callable, got {type(func).__name__}")
    return DoFunction(func)


def is_process(value: Any) -> bool:
    """Return True if ``value`` can be started as a task."""

    return isinstance(value, Program) or inspect.isgenerator(value) or callable(value)


def process_name(process: Any) -> str:
    if isinstance(process, Program):
        return process.name
    if inspect.isgenerator(process):
        return process.__qualname__
    return getattr(process, "__qualname__", None) or type(process).__name__


def to_generator(
    process: Any,
    args: tuple[Any, ...] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> Generator[Any, Any, Any]:
    """Normalise a process and its arguments into a fresh generator."""

    kwargs = kwargs or {}
    if isinstance(process, Program):
        if args or kwargs:
            raise TypeError(f"{process!r} already has its arguments bound")
        return process.to_generator()
    if inspect.isgenerator(process):
        if args or kwargs:
            raise TypeError("Cannot pass arguments to an already created generator")
        return process
    if callable(process):
        return Program(process, args, kwargs).to_generator()
    raise TypeError(
        "process must be a Program, a generator or a generator function, "
        f"got {type(process).__name__}"
    )


__all__ = [
    "DoFunction",
    "Program",
    "do",
    "is_process",
    "process_name",
    "to_generator",
]
