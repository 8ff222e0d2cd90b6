from __future__ import annotations

from typing import Any, FrozenSet, Mapping, Optional, Tuple

from loguru import logger

from .errors import Notice
from .models import FilterSpec, Todo, TodoStats
from .pipeline import apply_filters
from .repositories import TodoRepository, UpdateInput
from .stats import compute_stats
from .streams import AsyncioScheduler, BehaviorSubject, Debouncer, Scheduler, Subject, Subscription

DEFAULT_DEBOUNCE_SECONDS = 0.3


# PUBLIC_INTERFACE
class TodoQueryEngine:
    """
    Reactive view over a TodoRepository.

    Publishes two derived streams:
    - filtered_todos: the collection filtered and sorted by the applied filter spec
      and search term, recomputed immediately on every collection change
    - stats: aggregate counts over the whole collection

    Filter and search changes share one debounce timer: a burst of changes
    inside the window produces a single recomputation using only the latest
    values, and nothing is recomputed when the settled values equal the ones
    already applied.

    Commands are passed through to the repository.
    """

    def __init__(
        self,
        repository: TodoRepository,
        *,
        scheduler: Optional[Scheduler] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self.repository = repository
        self._collection: Tuple[Todo, ...] = ()

        self._pending_filter = FilterSpec()
        self._pending_search = ""
        self._applied_filter = self._pending_filter
        self._applied_search = self._pending_search

        self.filtered_todos: BehaviorSubject[Tuple[Todo, ...]] = BehaviorSubject(())
        self.stats: BehaviorSubject[TodoStats] = BehaviorSubject(TodoStats())

        self._debouncer = Debouncer(scheduler or AsyncioScheduler(), debounce_seconds, self._apply_pending)
        # The collection stream replays its current value, which primes both outputs
        self._subscription: Optional[Subscription] = repository.collection.subscribe(self._on_collection)

    # ---------------------------------------------------------------- streams

    @property
    def notices(self) -> Subject[Notice]:
        return self.repository.notices

    @property
    def available_tags(self) -> BehaviorSubject[FrozenSet[str]]:
        return self.repository.available_tags

    @property
    def available_categories(self) -> BehaviorSubject[FrozenSet[str]]:
        return self.repository.available_categories

    @property
    def filter(self) -> FilterSpec:
        """The most recently requested filter spec (possibly not yet applied)."""
        return self._pending_filter

    @property
    def search_term(self) -> str:
        return self._pending_search

    def get_filtered_todos(self) -> Tuple[Todo, ...]:
        return self.filtered_todos.value

    def get_stats(self) -> TodoStats:
        return self.stats.value

    def _on_collection(self, todos: Tuple[Todo, ...]) -> None:
        self._collection = todos
        self.stats.emit(compute_stats(todos))
        self._recompute()

    def _recompute(self) -> None:
        self.filtered_todos.emit(
            tuple(apply_filters(self._collection, self._applied_filter, self._applied_search))
        )

    def _apply_pending(self) -> None:
        if self._pending_filter == self._applied_filter and self._pending_search == self._applied_search:
            return
        self._applied_filter = self._pending_filter
        self._applied_search = self._pending_search
        logger.debug(f"Applying filter {self._applied_filter!r} with search {self._applied_search!r}")
        self._recompute()

    # ----------------------------------------------------------- filter state

    def set_filter(self, partial: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        """
        Merge the given fields into the filter spec; takes effect after the debounce delay.

        Raises:
            pydantic.ValidationError / ValueError for unknown fields or values.
        """
        self._pending_filter = self._pending_filter.merged({**dict(partial or {}), **fields})
        self._debouncer.trigger()

    def set_search_term(self, term: Optional[str]) -> None:
        self._pending_search = term or ""
        self._debouncer.trigger()

    def clear_filters(self) -> None:
        self._pending_filter = FilterSpec()
        self._pending_search = ""
        self._debouncer.trigger()

    def flush(self) -> None:
        """Apply pending filter/search changes now instead of waiting for the timer."""
        self._debouncer.flush()

    def dispose(self) -> None:
        """Cancel pending work and stop listening to the repository."""
        self._debouncer.cancel()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.filtered_todos.complete()
        self.stats.complete()

    # --------------------------------------------------------------- commands

    def add_todo(self, title: str, content: str = "", **options: Any) -> Todo:
        return self.repository.add_todo(title, content, **options)

    def create_from_payload(self, payload: Mapping[str, Any]) -> Todo:
        return self.repository.create_from_payload(payload)

    def get_by_id(self, todo_id: str) -> Optional[Todo]:
        return self.repository.get_by_id(todo_id)

    def update_todo(self, todo_id: str, partial: UpdateInput = None, **fields: Any) -> Optional[Todo]:
        return self.repository.update_todo(todo_id, partial, **fields)

    def delete_todo(self, todo_id: str) -> bool:
        return self.repository.delete_todo(todo_id)

    def toggle_complete(self, todo_id: str) -> Optional[Todo]:
        return self.repository.toggle_complete(todo_id)

    def toggle_pin(self, todo_id: str) -> Optional[Todo]:
        return self.repository.toggle_pin(todo_id)

    def clear_completed(self) -> int:
        return self.repository.clear_completed()

    def toggle_all(self, completed: bool) -> None:
        self.repository.toggle_all(completed)

    def add_tag(self, name: str) -> bool:
        return self.repository.add_tag(name)

    def remove_tag(self, name: str) -> bool:
        return self.repository.remove_tag(name)
