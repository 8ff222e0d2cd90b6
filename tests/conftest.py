"""Shared fixtures: deterministic clock, manual scheduler and a wired engine."""

import pytest

from helpers import FakeClock, ManualScheduler
from todo_engine.engine import TodoQueryEngine
from todo_engine.repositories import TodoRepository
from todo_engine.storage import TodoStorage
from todo_engine.stores import InMemoryKeyValueStore


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def storage(store):
    return TodoStorage(store, prefix="test-")


@pytest.fixture
def repository(storage, clock):
    return TodoRepository(storage, clock=clock)


@pytest.fixture
def notices(repository):
    received = []
    repository.notices.subscribe(received.append)
    return received


@pytest.fixture
def engine(repository, scheduler):
    eng = TodoQueryEngine(repository, scheduler=scheduler, debounce_seconds=0.3)
    yield eng
    eng.dispose()
