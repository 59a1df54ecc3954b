"""Shared plumbing for runtimes that own a Scheduler."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from sagaflow.effects.spawn import TaskHandle
from sagaflow.store import Store, StoreBridge

from .events import TaskEvent
from .scheduler import Scheduler


class BaseRuntime:
    """Base class for runtimes.

    Subclasses create ``self.scheduler`` and decide when it drains and how
    its clock advances.
    """

    scheduler: Scheduler

    def __init__(
        self,
        store: StoreBridge | None = None,
        *,
        handlers: Mapping[type, Any] | None = None,
        warn_on_unjoined_failures: bool = True,
    ) -> None:
        self.store: StoreBridge = store if store is not None else Store()
        self._handlers = handlers
        self._warn_on_unjoined_failures = warn_on_unjoined_failures

    def schedule(self, process: Any, *args: Any, name: str | None = None, **kwargs: Any) -> TaskHandle[Any]:
        """Start ``process`` as a root task and return its handle."""
        return self.scheduler.schedule(process, *args, name=name, **kwargs)

    def dispatch(self, action: Any) -> Any:
        """Dispatch an action from outside any process."""
        return self.store.dispatch(action)

    def cancel(self, handle: TaskHandle[Any]) -> bool:
        return self.scheduler.cancel(handle.id)

    def add_observer(self, observer: Callable[[TaskEvent], None]) -> Callable[[], None]:
        return self.scheduler.add_observer(observer)

    def now(self) -> float:
        return self.scheduler.clock.now()


__all__ = ["BaseRuntime"]
