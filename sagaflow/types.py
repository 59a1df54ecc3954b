"""Core types shared by effect descriptors and the scheduler."""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, NewType, TypeVar

TaskId = NewType("TaskId", int)

T = TypeVar("T")
E = TypeVar("E", bound="EffectBase")


# ============================================
# Effect Creation Context
# ============================================


@dataclass(frozen=True)
class EffectCreationContext:
    """Context information about where an effect was created."""

    filename: str
    line: int
    function: str
    code: str | None = None
    stack_trace: list[dict[str, Any]] = field(default_factory=list)

    def format_location(self) -> str:
        """Format the creation location as a string."""
        return f"{self.filename}:{self.line} in {self.function}"

    def format_full(self) -> str:
        """Format the full creation context with stack trace."""
        lines = [f"Effect created at {self.format_location()}"]
        if self.code:
            lines.append(f"    {self.code}")
        if self.stack_trace:
            lines.append("\nCreation stack trace:")
            for frame in self.stack_trace:
                lines.append(
                    f'  File "{frame["filename"]}", line {frame["line"]}, in {frame["function"]}'
                )
                if frame.get("code"):
                    lines.append(f"    {frame['code']}")
        return "\n".join(lines)


# ============================================
# Effect Base
# ============================================


@dataclass(frozen=True, kw_only=True)
class EffectBase:
    """Base dataclass for every Effect Descriptor.

    Effects are requests (pure data), not computations. Nothing happens until
    a scheduler interprets the yielded value through its handler table.
    """

    created_at: EffectCreationContext | None = field(
        default=None, compare=False, repr=False
    )

    def with_created_at(self: E, created_at: EffectCreationContext | None) -> E:
        if created_at is self.created_at:
            return self
        return replace(self, created_at=created_at)

    def describe(self) -> str:
        """Short label used for task ``waiting_on`` and log lines."""
        return type(self).__name__.removesuffix("Effect")


class TaskStatus(Enum):
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})


# Type alias for generators used as processes
EffectGenerator = Generator[Any, Any, T]


__all__ = [
    "EffectBase",
    "EffectCreationContext",
    "EffectGenerator",
    "TaskId",
    "TaskStatus",
]
