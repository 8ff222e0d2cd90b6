from datetime import datetime, timedelta, timezone

from todo_engine.models import FilterSpec, Todo
from todo_engine.pipeline import apply_filters

BASE = datetime(2025, 3, 1, tzinfo=timezone.utc)


def todo(n, **fields):
    data = {
        "id": f"t{n}",
        "title": f"Task {n}",
        "content": "",
        "created_at": BASE + timedelta(minutes=n),
        "updated_at": BASE + timedelta(minutes=n),
    }
    data.update(fields)
    return Todo(**data)


def ids(todos):
    return [t.id for t in todos]


def test_empty_collection():
    assert apply_filters([], FilterSpec(), "anything") == []


def test_default_spec_sorts_newest_first():
    items = [todo(1), todo(3), todo(2)]
    assert ids(apply_filters(items)) == ["t3", "t2", "t1"]


def test_status_filter():
    items = [todo(1, completed=True), todo(2)]
    assert ids(apply_filters(items, FilterSpec(status="active"))) == ["t2"]
    assert ids(apply_filters(items, FilterSpec(status="completed"))) == ["t1"]
    assert len(apply_filters(items, FilterSpec(status="all"))) == 2


def test_priority_and_category_filters():
    items = [
        todo(1, priority="high", category="Work"),
        todo(2, priority="high", category="Home"),
        todo(3, priority="low", category="Work"),
    ]
    assert ids(apply_filters(items, FilterSpec(priority="high", category="Work"))) == ["t1"]
    assert ids(apply_filters(items, FilterSpec(category="Work", sort_order="asc"))) == ["t1", "t3"]


def test_tags_use_and_semantics():
    items = [todo(1, tags=["a"]), todo(2, tags=["a", "b"]), todo(3, tags=["b"])]
    assert ids(apply_filters(items, FilterSpec(tags={"a", "b"}))) == ["t2"]


def test_search_is_case_insensitive_across_fields():
    items = [
        todo(1, title="Buy MILK"),
        todo(2, content="<p>oat milk</p>"),
        todo(3, notes="Milkshake later"),
        todo(4, tags=["milk-run"]),
        todo(5, title="Unrelated"),
    ]
    assert sorted(ids(apply_filters(items, FilterSpec(), "milk"))) == ["t1", "t2", "t3", "t4"]
    assert len(apply_filters(items, FilterSpec(), "   ")) == 5


def test_priority_sort_uses_rank():
    items = [todo(1, priority="low"), todo(2, priority="high"), todo(3, priority="medium")]
    desc = apply_filters(items, FilterSpec(sort_by="priority", sort_order="desc"))
    asc = apply_filters(items, FilterSpec(sort_by="priority", sort_order="asc"))
    assert [t.priority.value for t in desc] == ["high", "medium", "low"]
    assert [t.priority.value for t in asc] == ["low", "medium", "high"]


def test_due_date_sort_puts_undated_last_in_both_directions():
    items = [
        todo(1),
        todo(2, due_date=BASE + timedelta(days=2)),
        todo(3, due_date=BASE + timedelta(days=1)),
        todo(4),
    ]
    asc = apply_filters(items, FilterSpec(sort_by="dueDate", sort_order="asc"))
    desc = apply_filters(items, FilterSpec(sort_by="dueDate", sort_order="desc"))
    assert ids(asc) == ["t3", "t2", "t1", "t4"]
    assert ids(desc) == ["t2", "t3", "t1", "t4"]


def test_updated_at_sort():
    items = [todo(1, updated_at=BASE + timedelta(days=5)), todo(2)]
    assert ids(apply_filters(items, FilterSpec(sort_by="updatedAt", sort_order="desc"))) == ["t1", "t2"]


def test_ties_keep_collection_order():
    items = [todo(1, priority="high"), todo(2, priority="high"), todo(3, priority="high")]
    assert ids(apply_filters(items, FilterSpec(sort_by="priority", sort_order="desc"))) == ["t1", "t2", "t3"]
    assert ids(apply_filters(items, FilterSpec(sort_by="priority", sort_order="asc"))) == ["t1", "t2", "t3"]


def test_is_pure_and_repeatable():
    items = [todo(1, tags=["x"]), todo(2), todo(3, completed=True)]
    spec = FilterSpec(status="active", sort_order="asc")
    first = apply_filters(items, spec, "task")
    second = apply_filters(items, spec, "task")
    assert first == second
    assert ids(items) == ["t1", "t2", "t3"]
