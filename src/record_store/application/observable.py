"""Future/observable pairs for store results.

Every store call hands back a StoreFuture: a single asyncio future that can
be awaited *and* subscribed to. Both consumers see the same completion, so
the work behind a call runs once no matter how it is observed.

UpdateStream is the long-lived counterpart: it pushes every result of a
store, in call order, to any number of subscribers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any, Callable, Generic, TypeVar

from record_store.infrastructure.logging import get_logger

R = TypeVar("R")

logger = get_logger(__name__)


class Subscription:
    """Handle returned by ``subscribe``; call ``unsubscribe`` to stop delivery."""

    __slots__ = ("_cancel", "_closed")

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        if not self._closed:
            self._closed = True
            self._cancel()


class StoreFuture(Generic[R]):
    """Awaitable, single-shot observable result of one store call.

    Subscribers receive exactly one ``on_next`` followed by ``on_complete``,
    or exactly one ``on_error``. Subscribing after completion still
    delivers, on the next loop iteration.

    Awaiting is shielded: cancelling the awaiting task does not cancel the
    queued operation, which always runs to completion.
    """

    __slots__ = ("_future",)

    def __init__(self, future: asyncio.Future[R]) -> None:
        self._future = future

    def __await__(self) -> Generator[Any, None, R]:
        return asyncio.shield(self._future).__await__()

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> R:
        """Return the result of a completed call (see ``asyncio.Future.result``)."""
        return self._future.result()

    def exception(self) -> BaseException | None:
        return self._future.exception()

    def subscribe(
        self,
        on_next: Callable[[R], Any] | None = None,
        on_error: Callable[[BaseException], Any] | None = None,
        on_complete: Callable[[], Any] | None = None,
    ) -> Subscription:
        """Observe the single result of this call."""

        def deliver(future: asyncio.Future[R]) -> None:
            if future.cancelled():
                if on_error is not None:
                    on_error(asyncio.CancelledError())
                return
            error = future.exception()
            if error is not None:
                if on_error is not None:
                    on_error(error)
                return
            if on_next is not None:
                on_next(future.result())
            if on_complete is not None:
                on_complete()

        self._future.add_done_callback(deliver)
        return Subscription(lambda: self._future.remove_done_callback(deliver))


class _Observer(Generic[R]):
    __slots__ = ("on_next", "on_error")

    def __init__(
        self,
        on_next: Callable[[R], Any],
        on_error: Callable[[BaseException], Any] | None,
    ) -> None:
        self.on_next = on_next
        self.on_error = on_error


class UpdateStream(Generic[R]):
    """Multi-subscriber push stream of store results.

    A subscriber that raises is logged and does not prevent delivery to
    the others.
    """

    def __init__(self) -> None:
        self._observers: list[_Observer[R]] = []

    def subscribe(
        self,
        on_next: Callable[[R], Any],
        on_error: Callable[[BaseException], Any] | None = None,
    ) -> Subscription:
        observer = _Observer(on_next, on_error)
        self._observers.append(observer)
        return Subscription(lambda: self._remove(observer))

    def emit(self, value: R) -> None:
        for observer in list(self._observers):
            self._deliver(observer.on_next, value)

    def emit_error(self, error: BaseException) -> None:
        for observer in list(self._observers):
            if observer.on_error is not None:
                self._deliver(observer.on_error, error)

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    def _remove(self, observer: _Observer[R]) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @staticmethod
    def _deliver(callback: Callable[[Any], Any], value: Any) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("update_subscriber_failed")
