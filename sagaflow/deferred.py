"""Deferred results for operations completed outside the scheduler.

``Invoke`` accepts operations that return a ``Deferred``: the calling task
suspends until external code calls ``resolve()`` or ``reject()``. Several
tasks may wait on one deferred. When the last waiting task is cancelled
before it settles, the abort hook runs and any later resolution is
discarded.

Example:
    def fetch(url):
        deferred = Deferred(on_abort=lambda: request.cancel())
        request = http.get(url, callback=deferred.resolve, errback=deferred.reject)
        return deferred

    @do
    def program():
        body = yield Invoke(fetch, "https://example.com")
        return body
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from uuid import UUID, uuid4

from sagaflow.result import Err, Ok, Result

T = TypeVar("T")


@dataclass(eq=False)
class Deferred(Generic[T]):
    """A single-assignment result with an optional abort hook.

    Attributes:
        on_abort: Called once if the last waiting task is cancelled before
            the deferred settles.
    """

    on_abort: Callable[[], None] | None = field(default=None, repr=False)
    _id: UUID = field(default_factory=uuid4)
    _outcome: Result[T] | None = field(default=None, init=False, repr=False)
    _callbacks: list[Callable[[Result[T]], None]] = field(
        default_factory=list, init=False, repr=False
    )
    _aborted: bool = field(default=False, init=False)

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def settled(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> Result[T] | None:
        return self._outcome

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def waiting(self) -> int:
        """Number of subscribers still waiting for the outcome."""
        return len(self._callbacks)

    def resolve(self, value: T) -> None:
        """Complete the deferred with a value. Later calls are ignored."""
        self._settle(Ok(value))

    def reject(self, error: BaseException) -> None:
        """Fail the deferred with an error. Later calls are ignored."""
        if not isinstance(error, BaseException):
            raise TypeError(f"error must be BaseException, got {type(error).__name__}")
        self._settle(Err(error))

    def abort(self) -> None:
        """Ask the underlying operation to stop and drop every subscriber."""
        if self._aborted or self.settled:
            return
        self._aborted = True
        self._callbacks.clear()
        if self.on_abort is not None:
            self.on_abort()

    def subscribe(self, callback: Callable[[Result[T]], None]) -> Callable[[], None]:
        """Call ``callback`` with the outcome; returns an unsubscribe function."""
        if self._outcome is not None:
            callback(self._outcome)
            return lambda: None
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def _settle(self, outcome: Result[T]) -> None:
        if self._outcome is not None or self._aborted:
            return
        self._outcome = outcome
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(outcome)


__all__ = ["Deferred"]
