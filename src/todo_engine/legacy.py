"""
Compatibility shim for hosts written against the original single-file todo
service: positional add_todo, fire-and-forget commands and a flat stats shape.
It stores everything through the full TodoRepository.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Tuple

from .models import Todo
from .repositories import TodoRepository
from .stats import compute_stats
from .streams import Subscription


class LegacyTodoService:
    def __init__(self, repository: TodoRepository) -> None:
        self.repository = repository

    def get_todos(self) -> Tuple[Todo, ...]:
        return self.repository.todos

    def subscribe(self, observer: Callable[[Tuple[Todo, ...]], None]) -> Subscription:
        return self.repository.collection.subscribe(observer)

    def add_todo(self, title: str, content: str, priority: str = "medium", category: str = "General") -> None:
        self.repository.add_todo(title.strip(), content.strip(), priority=priority, category=category)

    def update_todo(self, todo_id: str, updates: Mapping[str, Any]) -> None:
        # Unknown ids were silently ignored by the old service
        if self.repository.get_by_id(todo_id) is not None:
            self.repository.update_todo(todo_id, updates)

    def delete_todo(self, todo_id: str) -> None:
        if self.repository.get_by_id(todo_id) is not None:
            self.repository.delete_todo(todo_id)

    def toggle_complete(self, todo_id: str) -> None:
        if self.repository.get_by_id(todo_id) is not None:
            self.repository.toggle_complete(todo_id)

    def clear_completed(self) -> None:
        self.repository.clear_completed()

    def get_stats(self) -> Dict[str, Any]:
        """Return total/completed/active plus a by-priority breakdown."""
        stats = compute_stats(self.repository.todos)
        return {
            "total": stats.total,
            "completed": stats.completed,
            "active": stats.active,
            "byPriority": dict(stats.by_priority),
        }
