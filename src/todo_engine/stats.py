from __future__ import annotations

from typing import Dict, Iterable

from .models import Priority, Todo, TodoStats


# PUBLIC_INTERFACE
def compute_stats(todos: Iterable[Todo]) -> TodoStats:
    """Count todos by completion, priority, category and tag."""
    total = 0
    completed = 0
    by_priority: Dict[str, int] = {p.value: 0 for p in Priority}
    by_category: Dict[str, int] = {}
    by_tag: Dict[str, int] = {}

    for todo in todos:
        total += 1
        if todo.completed:
            completed += 1
        by_priority[todo.priority.value] += 1
        if todo.category:
            by_category[todo.category] = by_category.get(todo.category, 0) + 1
        for tag in todo.tags:
            by_tag[tag] = by_tag.get(tag, 0) + 1

    return TodoStats(
        total=total,
        completed=completed,
        active=total - completed,
        by_priority=by_priority,
        by_category=by_category,
        by_tag=by_tag,
    )
