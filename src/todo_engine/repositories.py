from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from .errors import Notice, NoticeKind, Severity, StorageError, StorageQuotaExceeded, StorageWriteError
from .ids import IdGenerator
from .models import Todo
from .schemas import TodoCreate, TodoUpdate
from .storage import TodoStorage
from .streams import BehaviorSubject, BufferedSubject
from .utils import ensure_aware, utcnow

DEFAULT_CATEGORIES = ("Work", "Personal", "Shopping", "Health")

NOT_FOUND_MESSAGE = "Todo not found"

UpdateInput = Union[Mapping[str, Any], TodoUpdate, None]


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract contract for the authoritative todo collection."""

    @abstractmethod
    def add_todo(self, title: str, content: str = "", **options: Any) -> Todo:
        """Create, store and return a new Todo."""

    @abstractmethod
    def get_by_id(self, todo_id: str) -> Optional[Todo]:
        """Return the Todo with this id, or None if not found."""

    @abstractmethod
    def update_todo(self, todo_id: str, partial: UpdateInput = None, **fields: Any) -> Optional[Todo]:
        """Merge fields into an existing Todo. Return the updated Todo or None if not found."""

    @abstractmethod
    def delete_todo(self, todo_id: str) -> bool:
        """Delete a Todo by id. Return True if deleted, False if not found."""

    @abstractmethod
    def clear_completed(self) -> int:
        """Delete every completed Todo and return how many were removed."""


class TodoRepository(Repository):
    """
    Owns the in-memory todo collection and the tag/category registries.

    - Loads eagerly from the storage adapter at construction.
    - Every mutation replaces the collection with a new immutable snapshot,
      refreshes the registries, writes through the adapter (best effort) and
      emits the snapshot on `collection`.
    - Runtime problems (unknown ids, unreadable or full storage) never raise;
      they are reported on `notices`.
    """

    def __init__(
        self,
        storage: TodoStorage,
        *,
        id_generator: Optional[IdGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        prune_threshold: int = 50,
        prune_keep: int = 50,
        default_categories: Iterable[str] = DEFAULT_CATEGORIES,
    ) -> None:
        self._storage = storage
        self._ids = id_generator or IdGenerator()
        self._clock = clock or utcnow
        self._prune_threshold = prune_threshold
        self._prune_keep = prune_keep

        self._todos: Tuple[Todo, ...] = ()
        self._tags: FrozenSet[str] = frozenset()
        self._categories: FrozenSet[str] = frozenset(default_categories)

        self.collection: BehaviorSubject[Tuple[Todo, ...]] = BehaviorSubject(())
        self.available_tags: BehaviorSubject[FrozenSet[str]] = BehaviorSubject(self._tags)
        self.available_categories: BehaviorSubject[FrozenSet[str]] = BehaviorSubject(self._categories)
        self.notices: BufferedSubject[Notice] = BufferedSubject()

        self._load()

    # ------------------------------------------------------------------ state

    @property
    def todos(self) -> Tuple[Todo, ...]:
        return self._todos

    @property
    def tags(self) -> FrozenSet[str]:
        return self._tags

    @property
    def categories(self) -> FrozenSet[str]:
        return self._categories

    def _load(self) -> None:
        todos = self._storage.load_todos()
        error = self._storage.last_error
        tags = self._storage.load_tags()
        error = error or self._storage.last_error

        self._todos = tuple(todos)
        self._tags = frozenset(tags)
        self._refresh_registries()
        self.available_tags.emit(self._tags)
        self.available_categories.emit(self._categories)
        logger.info(f"Loaded {len(self._todos)} todos and {len(self._tags)} tags")
        if error:
            self._notify(NoticeKind.LOAD_FAILED, "Error loading todos", Severity.WARNING)
        self.collection.emit(self._todos)

    def _now(self, previous: Optional[datetime] = None) -> datetime:
        now = ensure_aware(self._clock())
        if previous is not None and now <= previous:
            # Timestamps must strictly advance even on coarse clocks
            now = previous + timedelta(microseconds=1)
        return now

    def _notify(self, kind: NoticeKind, message: str, severity: Severity = Severity.WARNING, blocking: bool = False) -> None:
        self.notices.emit(Notice(kind=kind, message=message, severity=severity, blocking=blocking))

    def _not_found(self, todo_id: str) -> None:
        logger.warning(f"Todo '{todo_id}' not found")
        self._notify(NoticeKind.NOT_FOUND, NOT_FOUND_MESSAGE)

    def _index_of(self, todo_id: str) -> int:
        for i, todo in enumerate(self._todos):
            if todo.id == todo_id:
                return i
        return -1

    def _refresh_registries(self) -> None:
        tags = set(self._tags)
        categories = set(self._categories)
        for todo in self._todos:
            tags.update(todo.tags)
            if todo.category:
                categories.add(todo.category)
        if tags != self._tags:
            self._tags = frozenset(tags)
            self.available_tags.emit(self._tags)
        if categories != self._categories:
            self._categories = frozenset(categories)
            self.available_categories.emit(self._categories)

    def _commit(self, todos: Sequence[Todo]) -> None:
        self._todos = tuple(todos)
        self._refresh_registries()
        self._persist()
        self.collection.emit(self._todos)

    # ------------------------------------------------------------ persistence

    def _persist(self) -> None:
        try:
            self._storage.save_todos(self._todos)
        except StorageQuotaExceeded:
            if not self._recover_from_full_store():
                return
        except StorageWriteError:
            self._notify(NoticeKind.SAVE_FAILED, "Error saving todos", Severity.ERROR)
            return
        self._persist_tags()

    def _persist_tags(self) -> None:
        try:
            self._storage.save_tags(self._tags)
        except StorageError:
            self._notify(NoticeKind.SAVE_FAILED, "Error saving tags", Severity.ERROR)

    def _recover_from_full_store(self) -> bool:
        """
        Prune to the most recently updated todos and retry the write once.

        Returns True when the pruned collection was written. On failure the
        in-memory collection is left unpruned.
        """
        if len(self._todos) <= self._prune_threshold:
            logger.error(f"Store is full with only {len(self._todos)} todos; nothing pruned")
            self._notify(
                NoticeKind.STORAGE_FULL,
                "Storage is full. Delete some todos to continue saving.",
                Severity.ERROR,
                blocking=True,
            )
            return False

        newest = sorted(self._todos, key=lambda t: t.updated_at, reverse=True)[: self._prune_keep]
        keep_ids = {t.id for t in newest}
        pruned = tuple(t for t in self._todos if t.id in keep_ids)
        removed = len(self._todos) - len(pruned)
        try:
            self._storage.save_todos(pruned)
        except StorageQuotaExceeded:
            logger.error(f"Store is still full after pruning to {len(pruned)} todos")
            self._notify(
                NoticeKind.STORAGE_FULL,
                "Storage is full. Delete some todos to continue saving.",
                Severity.ERROR,
                blocking=True,
            )
            return False
        except StorageWriteError:
            self._notify(NoticeKind.SAVE_FAILED, "Error saving todos", Severity.ERROR)
            return False

        self._todos = pruned
        self._refresh_registries()
        logger.warning(f"Store was full; pruned {removed} older todos and kept {len(pruned)}")
        self._notify(
            NoticeKind.DATA_PRUNED,
            f"Storage was full. {removed} older todos were removed to free space.",
            Severity.WARNING,
        )
        return True

    # -------------------------------------------------------------- commands

    def _insert(self, data: TodoCreate) -> Todo:
        now = self._now()
        todo = Todo(
            id=self._ids.generate(),
            title=data.title,
            content=data.content,
            completed=False,
            created_at=now,
            updated_at=now,
            priority=data.priority,
            category=data.category,
            tags=tuple(data.tags),
            is_pinned=data.is_pinned,
            due_date=data.due_date,
            notes=data.notes,
        )
        self._commit([*self._todos, todo])
        logger.debug(f"Added todo '{todo.id}'")
        return todo

    def add_todo(
        self,
        title: str,
        content: str = "",
        *,
        priority: Any = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        due_date: Any = None,
        is_pinned: Optional[bool] = None,
        notes: Optional[str] = None,
    ) -> Todo:
        """
        Create a todo from a title, body and options, store it and return it.

        Raises:
            pydantic.ValidationError if the title is empty or due_date is malformed.
        """
        data = TodoCreate.model_validate(
            {
                "title": title,
                "content": content,
                "priority": priority,
                "category": category,
                "tags": tags,
                "due_date": due_date,
                "is_pinned": is_pinned,
                "notes": notes,
            }
        )
        return self._insert(data)

    def create_from_payload(self, payload: Union[Mapping[str, Any], TodoCreate]) -> Todo:
        """Create a todo from a form-shaped mapping (camelCase or snake_case keys)."""
        data = payload if isinstance(payload, TodoCreate) else TodoCreate.model_validate(dict(payload))
        return self._insert(data)

    def get_by_id(self, todo_id: str) -> Optional[Todo]:
        index = self._index_of(todo_id)
        return self._todos[index] if index >= 0 else None

    def update_todo(self, todo_id: str, partial: UpdateInput = None, **fields: Any) -> Optional[Todo]:
        index = self._index_of(todo_id)
        if index < 0:
            self._not_found(todo_id)
            return None

        if isinstance(partial, TodoUpdate):
            update = partial if not fields else TodoUpdate.model_validate(
                {**{k: getattr(partial, k) for k in partial.model_fields_set}, **fields}
            )
        else:
            update = TodoUpdate.model_validate({**dict(partial or {}), **fields})

        existing = self._todos[index]
        data = existing.model_dump()
        data.update(update.changes())
        data["updated_at"] = self._now(existing.updated_at)
        updated = Todo.model_validate(data)

        todos = list(self._todos)
        todos[index] = updated
        self._commit(todos)
        logger.debug(f"Updated todo '{todo_id}'")
        return updated

    def delete_todo(self, todo_id: str) -> bool:
        remaining = [t for t in self._todos if t.id != todo_id]
        if len(remaining) == len(self._todos):
            self._not_found(todo_id)
            return False
        self._commit(remaining)
        logger.debug(f"Deleted todo '{todo_id}'")
        return True

    def toggle_complete(self, todo_id: str) -> Optional[Todo]:
        todo = self.get_by_id(todo_id)
        if todo is None:
            self._not_found(todo_id)
            return None
        return self.update_todo(todo_id, completed=not todo.completed)

    def toggle_pin(self, todo_id: str) -> Optional[Todo]:
        todo = self.get_by_id(todo_id)
        if todo is None:
            self._not_found(todo_id)
            return None
        return self.update_todo(todo_id, is_pinned=not todo.is_pinned)

    def clear_completed(self) -> int:
        remaining = [t for t in self._todos if not t.completed]
        removed = len(self._todos) - len(remaining)
        if removed:
            self._commit(remaining)
            logger.debug(f"Cleared {removed} completed todos")
        return removed

    def toggle_all(self, completed: bool) -> None:
        """Mark every todo completed (or active) in one batch."""
        todos = [
            t.model_copy(update={"completed": completed, "updated_at": self._now(t.updated_at)})
            for t in self._todos
        ]
        self._commit(todos)

    # ------------------------------------------------------------------- tags

    def add_tag(self, name: str) -> bool:
        """Register a tag without attaching it to any todo. Return False if blank or known."""
        tag = name.strip()
        if not tag or tag in self._tags:
            return False
        self._tags = self._tags | {tag}
        self.available_tags.emit(self._tags)
        self._persist_tags()
        return True

    def remove_tag(self, name: str) -> bool:
        """
        Drop a tag from the registry and strip it from every todo carrying it.
        Return False if the tag is unknown.
        """
        tag = name.strip()
        carriers = [t for t in self._todos if tag in t.tags]
        if tag not in self._tags and not carriers:
            return False

        self._tags = self._tags - {tag}
        self.available_tags.emit(self._tags)
        todos: List[Todo] = [
            t.model_copy(
                update={
                    "tags": tuple(x for x in t.tags if x != tag),
                    "updated_at": self._now(t.updated_at),
                }
            )
            if tag in t.tags
            else t
            for t in self._todos
        ]
        self._commit(todos)
        logger.debug(f"Removed tag '{tag}' from {len(carriers)} todos")
        return True
