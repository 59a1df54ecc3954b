"""Store Bridge: the narrow interface to the external state container.

The engine reads state through ``read_state``, hands emitted actions to
``dispatch`` and learns about every dispatched action (from processes or
from the outside world) through ``subscribe``.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Reducer = Callable[[Any, Any], Any]
Listener = Callable[[Any], None]


@runtime_checkable
class StoreBridge(Protocol):
    """Interface a state container must provide to the scheduler."""

    def read_state(self, selector: Callable[..., Any] | None = None, *args: Any) -> Any:
        ...

    def dispatch(self, action: Any) -> Any:
        ...

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        ...


def _identity_reducer(state: Any, action: Any) -> Any:
    return state


class Store:
    """In-memory Store Bridge with a reducer.

    Each dispatched action is applied to the state before any listener sees
    it. Dispatches made from inside a listener are queued and applied after
    the current action finishes notifying, so every action is atomic.

    Args:
        reducer: ``(state, action) -> state``; defaults to identity.
        initial_state: State before the first action.
        record: Keep every dispatched action in ``dispatched``. Meant for
            tests; a long-lived store should leave it off.
    """

    def __init__(
        self, reducer: Reducer | None = None, initial_state: Any = None, *, record: bool = False
    ) -> None:
        self._reducer = reducer or _identity_reducer
        self._state = initial_state
        self._listeners: list[Listener] = []
        self._pending: deque[Any] = deque()
        self._dispatching = False
        self.record = record
        self.dispatched: list[Any] = []

    @property
    def state(self) -> Any:
        return self._state

    def read_state(self, selector: Callable[..., Any] | None = None, *args: Any) -> Any:
        if selector is None:
            return self._state
        return selector(self._state, *args)

    def dispatch(self, action: Any) -> Any:
        self._pending.append(action)
        if self._dispatching:
            return action
        self._dispatching = True
        try:
            while self._pending:
                current = self._pending.popleft()
                self._state = self._reducer(self._state, current)
                if self.record:
                    self.dispatched.append(current)
                logger.debug("dispatched %r", current)
                for listener in list(self._listeners):
                    listener(current)
        except BaseException:
            self._pending.clear()
            raise
        finally:
            self._dispatching = False
        return action

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


__all__ = ["Listener", "Reducer", "Store", "StoreBridge"]
