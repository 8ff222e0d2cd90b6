"""
Minimal single-threaded publish/subscribe primitives used by the repository and
the query engine: subjects that push values to subscribers, and a debouncer that
collapses bursts of changes into one callback through a pluggable scheduler.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable, Deque, Generic, List, Optional, Protocol, TypeVar

from loguru import logger

T = TypeVar("T")

Observer = Callable[[T], None]


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop receiving values."""

    def __init__(self, subject: "Subject", observer: Callable) -> None:
        self._subject = subject
        self._observer = observer
        self.closed = False

    def unsubscribe(self) -> None:
        if not self.closed:
            self._subject._remove(self._observer)
            self.closed = True


# PUBLIC_INTERFACE
class Subject(Generic[T]):
    """
    Pushes every emitted value to the current subscribers, in subscription order.

    An observer that raises is logged and skipped; it never stops delivery to
    the others or propagates into the emitter.
    """

    def __init__(self) -> None:
        self._observers: List[Observer[T]] = []
        self._completed = False

    def subscribe(self, observer: Observer[T]) -> Subscription:
        if not self._completed:
            self._observers.append(observer)
        return Subscription(self, observer)

    def _remove(self, observer: Observer[T]) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def emit(self, value: T) -> None:
        if self._completed:
            return
        for observer in list(self._observers):
            try:
                observer(value)
            except Exception:
                logger.exception(f"Subscriber {observer!r} failed while handling an emitted value")

    def complete(self) -> None:
        self._completed = True
        self._observers.clear()

    @property
    def observer_count(self) -> int:
        return len(self._observers)


# PUBLIC_INTERFACE
class BehaviorSubject(Subject[T]):
    """A Subject that holds a current value and replays it to each new subscriber."""

    def __init__(self, initial: T) -> None:
        super().__init__()
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, observer: Observer[T]) -> Subscription:
        subscription = super().subscribe(observer)
        if not self._completed:
            try:
                observer(self._value)
            except Exception:
                logger.exception(f"Subscriber {observer!r} failed while handling the current value")
        return subscription

    def emit(self, value: T) -> None:
        if self._completed:
            return
        self._value = value
        super().emit(value)


class BufferedSubject(Subject[T]):
    """
    A Subject that queues values emitted while nobody is subscribed and hands
    them to the first subscriber, so reports raised during construction are
    not lost. Only the newest max_backlog values are kept.
    """

    def __init__(self, max_backlog: int = 100) -> None:
        super().__init__()
        self._backlog: Deque[T] = deque(maxlen=max_backlog)

    def subscribe(self, observer: Observer[T]) -> Subscription:
        subscription = super().subscribe(observer)
        backlog = list(self._backlog)
        self._backlog.clear()
        for value in backlog:
            super().emit(value)
        return subscription

    def emit(self, value: T) -> None:
        if not self._observers and not self._completed:
            self._backlog.append(value)
            return
        super().emit(value)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback once after a delay in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


# PUBLIC_INTERFACE
class AsyncioScheduler:
    """
    Schedules callbacks on an asyncio event loop.

    Without an explicit loop the running loop is looked up on each call, so the
    engine can be built outside a coroutine and used inside one. Outside any
    loop call_later raises RuntimeError and Debouncer settles immediately.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


# PUBLIC_INTERFACE
class Debouncer:
    """
    Runs callback once a burst of trigger() calls has been quiet for delay seconds.

    Each trigger() cancels the pending timer and starts a new one. With a delay
    of zero (or less) the callback runs synchronously on every trigger().
    """

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._delay <= 0:
            self._callback()
            return
        self.cancel()
        try:
            self._handle = self._scheduler.call_later(self._delay, self._fire)
        except RuntimeError:
            # No event loop to wait on; settle immediately
            logger.warning("No running event loop for debounce timer; applying change immediately")
            self._callback()

    def _fire(self) -> None:
        self._handle = None
        self._callback()

    def flush(self) -> None:
        """Run a pending callback now instead of waiting for the timer."""
        if self._handle is not None:
            self.cancel()
            self._callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
