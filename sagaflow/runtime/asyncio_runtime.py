"""Asyncio runtime for async execution.

AsyncioRuntime provides:
- Real time waiting via the event loop's call_later
- Awaitables returned by invoked operations run as asyncio tasks
- The scheduler drains from ``loop.call_soon`` whenever work becomes ready
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from sagaflow.effects.spawn import TaskHandle
from sagaflow.result import Err, Ok, Result
from sagaflow.store import StoreBridge

from .base import BaseRuntime
from .clock import AsyncioClock
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class AsyncioRuntime(BaseRuntime):
    """Asyncio runtime for non-blocking execution.

    The scheduler is bound to the event loop running when the runtime is
    first used.

    Example:
        runtime = AsyncioRuntime(store)
        result = await runtime.run_async(my_program())

        # Or run synchronously
        result = runtime.run(my_program())
    """

    def __init__(
        self,
        store: StoreBridge | None = None,
        *,
        handlers: Mapping[type, Any] | None = None,
        warn_on_unjoined_failures: bool = True,
    ) -> None:
        super().__init__(
            store, handlers=handlers, warn_on_unjoined_failures=warn_on_unjoined_failures
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._scheduler: Scheduler | None = None
        self._drain_scheduled = False

    @property
    def scheduler(self) -> Scheduler:  # type: ignore[override]
        loop = asyncio.get_running_loop()
        if self._scheduler is None:
            self._loop = loop
            self._scheduler = Scheduler(
                self.store,
                AsyncioClock(loop),
                handlers=self._handlers,
                async_bridge=self._run_awaitable,
                on_ready=self._wake,
                warn_on_unjoined_failures=self._warn_on_unjoined_failures,
            )
        elif self._loop is not loop:
            raise RuntimeError("AsyncioRuntime is bound to a different event loop")
        return self._scheduler

    def schedule(self, process: Any, *args: Any, name: str | None = None, **kwargs: Any) -> TaskHandle[Any]:
        """Start a root task; must be called with the event loop running."""
        handle = super().schedule(process, *args, name=name, **kwargs)
        self._wake()
        return handle

    async def wait(self, handle: TaskHandle[Any]) -> Any:
        """Wait for ``handle`` to settle and return its result.

        Cancelling the awaiting coroutine cancels the task.
        """
        if not handle.is_done():
            future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

            def on_done(_: TaskHandle[Any]) -> None:
                if not future.done():
                    future.set_result(None)

            remove = handle.add_done_callback(on_done)
            try:
                await future
            except asyncio.CancelledError:
                remove()
                handle.cancel()
                raise
        return handle.result()

    async def run_async(self, process: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a process to completion and return its result."""
        handle = self.schedule(process, *args, **kwargs)
        return await self.wait(handle)

    def run(self, process: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a process synchronously using asyncio.run()."""
        return asyncio.run(self.run_async(process, *args, **kwargs))

    def close(self) -> None:
        if self._scheduler is not None:
            self._scheduler.close()

    def _wake(self) -> None:
        if self._drain_scheduled or self._loop is None:
            return
        self._drain_scheduled = True
        self._loop.call_soon(self._drain)

    def _drain(self) -> None:
        self._drain_scheduled = False
        if self._scheduler is not None:
            self._scheduler.run_until_idle()

    def _run_awaitable(
        self, awaitable: Any, on_outcome: Callable[[Result[Any]], None]
    ) -> Callable[[], None]:
        task = asyncio.ensure_future(awaitable)

        def done(finished: asyncio.Future[Any]) -> None:
            if finished.cancelled():
                logger.debug("Awaitable %r was cancelled", finished)
                return
            error = finished.exception()
            if error is not None:
                on_outcome(Err(error))
            else:
                on_outcome(Ok(finished.result()))

        task.add_done_callback(done)
        return task.cancel


__all__ = ["AsyncioRuntime"]
