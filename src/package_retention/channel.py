"""Cancellable handoff between the retention producer and the deletion consumer.

- ``CancelScope``: shared cancellation signal, set once by the first failure
- ``Channel``: unbuffered (rendezvous) channel; ``send`` returns only after the
  receiver took the item
- ``WorkerGroup``: runs workers in threads, the first error cancels the scope
  and is re-raised by ``wait()``
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from threading import Condition, Event, Lock, Thread
from typing import Generic, TypeVar

from loguru import logger

from package_retention.base import PipelineCancelledError

T = TypeVar("T")


class ChannelClosedError(RuntimeError):
    """Raised when sending on, or closing, an already closed channel."""


class CancelScope:
    """Cancellation signal shared by every worker of a group."""

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback run once when the scope is cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelledError("operation cancelled")


class Channel(Generic[T]):
    """Unbuffered channel for exactly one producer and one consumer.

    Invariants:
        - at most one item is offered at a time
        - ``close()`` happens exactly once
        - every blocking operation wakes up and raises
          ``PipelineCancelledError`` once the scope is cancelled
    """

    def __init__(self, scope: CancelScope) -> None:
        self._scope = scope
        self._condition = Condition()
        self._item: T | None = None
        self._full = False
        self._sent = 0
        self._received = 0
        self._closed = False
        scope.on_cancel(self._wake)

    def _wake(self) -> None:
        with self._condition:
            self._condition.notify_all()

    def send(self, item: T) -> None:
        """Offer an item and block until the consumer has taken it.

        Raises:
            PipelineCancelledError: If the scope is cancelled before the item
                was taken. The offer is withdrawn.
            ChannelClosedError: If the channel is closed.
        """
        with self._condition:
            while self._full:
                self._scope.raise_if_cancelled()
                self._condition.wait()

            self._scope.raise_if_cancelled()
            if self._closed:
                raise ChannelClosedError("send on closed channel")

            self._item = item
            self._full = True
            self._sent += 1
            ticket = self._sent
            self._condition.notify_all()

            while self._received < ticket:
                if self._scope.cancelled:
                    self._item = None
                    self._full = False
                    self._sent -= 1
                    raise PipelineCancelledError("send cancelled")
                self._condition.wait()

    def close(self) -> None:
        with self._condition:
            if self._closed:
                raise ChannelClosedError("close of closed channel")
            self._closed = True
            self._condition.notify_all()

    def __iter__(self) -> Iterator[T]:
        """Receive items until the channel is closed and drained."""
        while True:
            with self._condition:
                while not self._full and not self._closed:
                    self._scope.raise_if_cancelled()
                    self._condition.wait()

                self._scope.raise_if_cancelled()
                if not self._full:
                    return

                item = self._item
                self._item = None
                self._full = False
                self._received += 1
                self._condition.notify_all()

            yield item  # type: ignore[misc]


class WorkerGroup:
    """Run workers concurrently; the first failure cancels the others."""

    def __init__(self) -> None:
        self.scope = CancelScope()
        self._threads: list[Thread] = []
        self._lock = Lock()
        self._error: Exception | None = None

    def go(self, worker: Callable[[], None], name: str) -> None:
        def run() -> None:
            try:
                worker()
            except Exception as e:
                with self._lock:
                    if self._error is None:
                        self._error = e
                    elif not isinstance(e, PipelineCancelledError):
                        logger.debug(f"{name} failed after cancellation: {e}")
                self.scope.cancel()

        thread = Thread(target=run, name=name, daemon=True)
        self._threads.append(thread)
        thread.start()

    def wait(self) -> None:
        """Wait for every worker and re-raise the first error."""
        for thread in self._threads:
            thread.join()
        self.scope.cancel()
        if self._error is not None:
            raise self._error
