import asyncio

import pytest

from helpers import ManualScheduler
from todo_engine.streams import AsyncioScheduler, BehaviorSubject, BufferedSubject, Debouncer, Subject


class TestSubjects:
    def test_subject_delivers_to_subscribers_until_unsubscribed(self):
        subject = Subject()
        seen = []
        sub = subject.subscribe(seen.append)
        subject.emit(1)
        sub.unsubscribe()
        subject.emit(2)
        assert seen == [1]
        assert subject.observer_count == 0

    def test_failing_observer_does_not_break_others(self):
        subject = Subject()
        seen = []

        def broken(_value):
            raise RuntimeError("boom")

        subject.subscribe(broken)
        subject.subscribe(seen.append)
        subject.emit("x")
        assert seen == ["x"]

    def test_behavior_subject_replays_current_value(self):
        subject = BehaviorSubject(0)
        subject.emit(5)
        seen = []
        subject.subscribe(seen.append)
        subject.emit(6)
        assert seen == [5, 6]
        assert subject.value == 6

    def test_complete_stops_delivery(self):
        subject = BehaviorSubject("a")
        seen = []
        subject.subscribe(seen.append)
        subject.complete()
        subject.emit("b")
        assert seen == ["a"]

    def test_buffered_subject_hands_backlog_to_first_subscriber(self):
        subject = BufferedSubject()
        subject.emit("early")
        first, second = [], []
        subject.subscribe(first.append)
        subject.subscribe(second.append)
        subject.emit("late")
        assert first == ["early", "late"]
        assert second == ["late"]

    def test_buffered_subject_keeps_only_newest_backlog(self):
        subject = BufferedSubject(max_backlog=3)
        for i in range(10):
            subject.emit(i)
        seen = []
        subject.subscribe(seen.append)
        assert seen == [7, 8, 9]


class TestDebouncer:
    def test_burst_collapses_into_one_call(self):
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 0.3, lambda: calls.append(scheduler.now))
        debouncer.trigger()
        scheduler.advance(0.2)
        debouncer.trigger()
        scheduler.advance(0.2)
        assert calls == []
        scheduler.advance(0.2)
        assert len(calls) == 1
        assert not debouncer.pending

    def test_flush_and_cancel(self):
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 0.3, lambda: calls.append("fired"))
        debouncer.flush()
        assert calls == []
        debouncer.trigger()
        debouncer.flush()
        assert calls == ["fired"]
        debouncer.trigger()
        debouncer.cancel()
        scheduler.advance(1)
        assert calls == ["fired"]

    def test_zero_delay_runs_synchronously(self):
        calls = []
        debouncer = Debouncer(ManualScheduler(), 0, lambda: calls.append(1))
        debouncer.trigger()
        debouncer.trigger()
        assert calls == [1, 1]

    def test_without_event_loop_runs_immediately(self):
        calls = []
        debouncer = Debouncer(AsyncioScheduler(), 0.3, lambda: calls.append("settled"))
        debouncer.trigger()
        assert calls == ["settled"]
        assert not debouncer.pending


@pytest.mark.asyncio
async def test_asyncio_scheduler_uses_running_loop():
    calls = []
    debouncer = Debouncer(AsyncioScheduler(), 0.01, lambda: calls.append("done"))
    debouncer.trigger()
    debouncer.trigger()
    await asyncio.sleep(0.05)
    assert calls == ["done"]
