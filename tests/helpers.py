"""Test doubles shared across test modules."""

import json
from datetime import datetime, timedelta, timezone

from todo_engine.errors import StorageQuotaExceeded
from todo_engine.stores import InMemoryKeyValueStore

START = datetime(2025, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Returns START, START+1s, START+2s, ... on successive calls."""

    def __init__(self, start=START, step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current = self.current + self.step
        return value


class _Handle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Virtual-time scheduler: timers only fire when advance() moves time past them."""

    def __init__(self):
        self.now = 0.0
        self._timers = []

    def call_later(self, delay, callback):
        handle = _Handle()
        self._timers.append((self.now + delay, handle, callback))
        return handle

    @property
    def pending(self):
        return [t for t in self._timers if not t[1].cancelled]

    def advance(self, seconds):
        self.now += seconds
        due = [t for t in self._timers if t[0] <= self.now and not t[1].cancelled]
        self._timers = [t for t in self._timers if t not in due and not t[1].cancelled]
        for _, handle, callback in sorted(due, key=lambda t: t[0]):
            if not handle.cancelled:
                callback()


class LimitedStore(InMemoryKeyValueStore):
    """In-memory store that reports itself full once the todo array exceeds max_todos."""

    def __init__(self, max_todos=None):
        super().__init__()
        self.max_todos = max_todos

    def set_item(self, key, value):
        if self.max_todos is not None and key.endswith("todos"):
            count = len(json.loads(value))
            if count > self.max_todos:
                raise StorageQuotaExceeded(key, len(value), 0)
        super().set_item(key, value)
