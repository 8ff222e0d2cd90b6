from __future__ import annotations

from typing import Iterable, List, Optional

from .models import PRIORITY_RANK, FilterSpec, Todo


def _matches_search(todo: Todo, term: str) -> bool:
    if term in todo.title.lower() or term in todo.content.lower():
        return True
    if todo.notes and term in todo.notes.lower():
        return True
    return any(term in tag.lower() for tag in todo.tags)


def _sort(todos: List[Todo], sort_by: str, descending: bool) -> List[Todo]:
    # sorted() is stable in both directions, so collection order breaks ties
    if sort_by == "priority":
        return sorted(todos, key=lambda t: PRIORITY_RANK[t.priority], reverse=descending)

    if sort_by == "dueDate":
        # Undated todos always go last, whatever the direction
        dated = [t for t in todos if t.due_date is not None]
        undated = [t for t in todos if t.due_date is None]
        return sorted(dated, key=lambda t: t.due_date, reverse=descending) + undated

    if sort_by == "updatedAt":
        return sorted(todos, key=lambda t: t.updated_at, reverse=descending)

    return sorted(todos, key=lambda t: t.created_at, reverse=descending)


# PUBLIC_INTERFACE
def apply_filters(
    todos: Iterable[Todo],
    spec: Optional[FilterSpec] = None,
    search_term: Optional[str] = None,
) -> List[Todo]:
    """
    Return the todos matching spec and search_term, ordered by spec.sort_by/sort_order.

    Filters, in order:
    - status: 'active' keeps incomplete todos, 'completed' keeps completed ones
    - priority: exact match unless 'all'
    - category: exact match when set
    - tags: the todo must carry every required tag
    - search_term: case-insensitive substring of title, content, notes or any tag

    Pure function; the input is not modified.
    """
    spec = spec or FilterSpec()
    items = list(todos)

    if spec.status == "active":
        items = [t for t in items if not t.completed]
    elif spec.status == "completed":
        items = [t for t in items if t.completed]

    if spec.priority != "all":
        items = [t for t in items if t.priority.value == spec.priority]

    if spec.category is not None:
        items = [t for t in items if t.category == spec.category]

    if spec.tags:
        items = [t for t in items if spec.tags.issubset(t.tags)]

    term = (search_term or "").strip().lower()
    if term:
        items = [t for t in items if _matches_search(t, term)]

    return _sort(items, spec.sort_by, descending=spec.sort_order == "desc")
