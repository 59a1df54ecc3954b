"""Action types returned by effect handlers.

Actions are what handlers return to tell the scheduler's step loop what to
do next:

- Resume: continue the process with a value in the same step
- ResumeError: continue the process by raising an error at its yield
- Suspend: park the task until a Continuation delivers an outcome
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias


@dataclass(frozen=True)
class Resume:
    """Handler computed the result synchronously."""

    value: Any = None


@dataclass(frozen=True)
class ResumeError:
    """Handler wants the error raised at the process's yield point."""

    error: BaseException


@dataclass(frozen=True)
class Suspend:
    """The task waits; a Continuation resumes it later.

    ``release`` deregisters the wait (timer, waiter, subscription) and is
    called when the task is cancelled while suspended.
    """

    waiting_on: str
    release: Callable[[], None] | None = field(default=None, repr=False)


@dataclass(frozen=True)
class Fail:
    """Fatal to the task; the error is not thrown into the process."""

    error: BaseException


Action: TypeAlias = Resume | ResumeError | Suspend | Fail


__all__ = ["Action", "Fail", "Resume", "ResumeError", "Suspend"]
