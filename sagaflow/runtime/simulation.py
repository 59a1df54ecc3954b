"""Simulation runtime with a virtual clock.

Time only moves when the caller advances it or when ``run`` needs the next
timer to make progress, so timing-dependent processes run deterministically
and instantly.

Example:
    runtime = SimulationRuntime()
    handle = runtime.schedule(watcher)
    runtime.dispatch({"type": "SEARCH", "query": "a"})
    runtime.advance(0.3)
    assert handle.is_done()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sagaflow.effects.spawn import TaskHandle
from sagaflow.errors import DeadlockError
from sagaflow.store import StoreBridge

from .base import BaseRuntime
from .clock import SimClock
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class SimulationRuntime(BaseRuntime):
    def __init__(
        self,
        store: StoreBridge | None = None,
        *,
        start_time: float = 0.0,
        max_steps: int = 100_000,
        handlers: Mapping[type, Any] | None = None,
        warn_on_unjoined_failures: bool = True,
    ) -> None:
        super().__init__(
            store, handlers=handlers, warn_on_unjoined_failures=warn_on_unjoined_failures
        )
        self.clock = SimClock(start_time)
        self.max_steps = max_steps
        self.scheduler = Scheduler(
            self.store,
            self.clock,
            handlers=handlers,
            warn_on_unjoined_failures=warn_on_unjoined_failures,
        )

    def schedule(self, process: Any, *args: Any, name: str | None = None, **kwargs: Any) -> TaskHandle[Any]:
        handle = super().schedule(process, *args, name=name, **kwargs)
        self.scheduler.run_until_idle()
        return handle

    def dispatch(self, action: Any) -> Any:
        result = super().dispatch(action)
        self.scheduler.run_until_idle()
        return result

    def run_until_idle(self) -> None:
        self.scheduler.run_until_idle()

    def advance(self, seconds: float) -> float:
        """Move virtual time forward by ``seconds``, firing due timers in order."""
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        return self.advance_to(self.clock.now() + seconds)

    def advance_to(self, target_time: float) -> float:
        """Fire every timer due at or before ``target_time``.

        Tasks woken by a timer run before the next timer fires, so timers
        they start inside the window fire too.
        """
        self.scheduler.run_until_idle()
        while (entry := self.clock.pop_due(target_time)) is not None:
            entry.callback()
            self.scheduler.run_until_idle()
        return self.clock.advance_to(target_time)

    def run(self, process: Any, *args: Any, **kwargs: Any) -> Any:
        """Run ``process`` to completion, jumping the clock timer to timer.

        Raises the process's failure, or DeadlockError when it is still
        suspended with no ready work and no pending timers.
        """
        handle = self.schedule(process, *args, **kwargs)
        return self.run_handle(handle)

    def run_handle(self, handle: TaskHandle[Any]) -> Any:
        steps = 0
        self.scheduler.run_until_idle()
        while not handle.is_done():
            entry = self.clock.pop_next()
            if entry is None:
                raise DeadlockError(
                    f"Task {handle.id} ({handle.name}) is waiting on {handle.waiting_on} "
                    "with no pending timers"
                )
            entry.callback()
            self.scheduler.run_until_idle()
            steps += 1
            if steps > self.max_steps:
                raise DeadlockError(f"Simulation exceeded {self.max_steps} timer steps")
        logger.debug("Task %s finished at t=%s", handle.id, self.clock.now())
        return handle.result()


__all__ = ["SimulationRuntime"]
