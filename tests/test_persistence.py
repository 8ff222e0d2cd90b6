import json

import pytest

from helpers import ManualScheduler
from todo_engine import create_engine
from todo_engine.errors import NoticeKind
from todo_engine.settings import Settings


@pytest.mark.parametrize("backend, path", [("file", "store"), ("sqlite", "todos.db")])
def test_state_survives_restart(tmp_path, backend, path):
    settings = Settings(storage_backend=backend, storage_path=str(tmp_path / path), storage_prefix="todo-prod-")
    first = create_engine(settings, scheduler=ManualScheduler())
    todo = first.add_todo("Persist me", "body", tags=["keep"], due_date="2099-01-01", notes="n")
    first.toggle_complete(todo.id)
    first.add_tag("spare")

    second = create_engine(settings, scheduler=ManualScheduler())
    loaded = second.get_by_id(todo.id)
    assert loaded is not None
    assert loaded.completed is True
    assert loaded.tags == ("keep",)
    assert loaded.notes == "n"
    assert second.available_tags.value == frozenset({"keep", "spare"})
    assert second.get_stats().completed == 1


def test_persisted_layout(tmp_path):
    settings = Settings(storage_backend="file", storage_path=str(tmp_path), storage_prefix="todo-")
    engine = create_engine(settings, scheduler=ManualScheduler())
    engine.add_todo("Layout", priority="low", tags=["t"])

    records = json.loads((tmp_path / "todo-todos.json").read_text(encoding="utf-8"))
    assert set(records[0]) >= {"id", "title", "content", "completed", "createdAt", "updatedAt", "priority", "category", "tags", "isPinned"}
    assert records[0]["priority"] == "low"
    assert json.loads((tmp_path / "todo-tags.json").read_text(encoding="utf-8")) == ["t"]


def test_corrupt_file_starts_empty(tmp_path):
    (tmp_path / "todo-todos.json").write_text("not json", encoding="utf-8")
    settings = Settings(storage_backend="file", storage_path=str(tmp_path))
    engine = create_engine(settings, scheduler=ManualScheduler())
    received = []
    engine.notices.subscribe(received.append)
    assert engine.get_filtered_todos() == ()
    assert [n.kind for n in received] == [NoticeKind.LOAD_FAILED]
    engine.add_todo("fresh start")
    assert len(json.loads((tmp_path / "todo-todos.json").read_text(encoding="utf-8"))) == 1


def test_small_quota_reports_storage_full(tmp_path):
    settings = Settings(storage_backend="sqlite", storage_path=str(tmp_path / "q.db"), storage_quota_bytes=600)
    engine = create_engine(settings, scheduler=ManualScheduler())
    received = []
    engine.notices.subscribe(received.append)
    for i in range(5):
        engine.add_todo(f"Task number {i}", "some body text")
    assert len(engine.repository.todos) == 5
    assert NoticeKind.STORAGE_FULL in [n.kind for n in received]
    assert all(n.blocking for n in received if n.kind is NoticeKind.STORAGE_FULL)
