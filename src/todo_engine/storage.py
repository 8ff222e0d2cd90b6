"""
Durable store adapter: reads and writes the whole todo collection and the tag
registry as JSON documents in a key-value store.

Reads fail softly (absent or corrupt data is logged and treated as empty).
Writes raise StorageQuotaExceeded when the store is full and StorageWriteError
for anything else; the repository decides how to recover.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError

from .errors import StorageError, StorageQuotaExceeded, StorageWriteError
from .models import DEFAULT_CATEGORY, Priority, Todo
from .stores import KeyValueStore
from .utils import parse_datetime

TODOS_KEY = "todos"
TAGS_KEY = "tags"


# PUBLIC_INTERFACE
def upgrade_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bring a persisted todo record written by any earlier schema up to the current shape.

    - updatedAt defaults to createdAt and is raised to createdAt if it precedes it
    - tags defaults to an empty list, isPinned to False
    - priority defaults to medium, category to 'General', content to ''
    - snake_case keys from older writers are accepted

    The input is not modified; a new dict is returned.
    """
    record = dict(raw)
    for snake, camel in (
        ("created_at", "createdAt"),
        ("updated_at", "updatedAt"),
        ("due_date", "dueDate"),
        ("is_pinned", "isPinned"),
    ):
        if snake in record and camel not in record:
            record[camel] = record.pop(snake)

    if not record.get("updatedAt"):
        record["updatedAt"] = record.get("createdAt")
    if record.get("tags") is None:
        record["tags"] = []
    if record.get("isPinned") is None:
        record["isPinned"] = False
    if not record.get("priority"):
        record["priority"] = Priority.MEDIUM.value
    if not record.get("category"):
        record["category"] = DEFAULT_CATEGORY
    if record.get("content") is None:
        record["content"] = ""
    if not record.get("dueDate"):
        record.pop("dueDate", None)

    try:
        created = parse_datetime(record.get("createdAt"))
        updated = parse_datetime(record.get("updatedAt"))
    except ValueError:
        # Left for model validation to reject
        return record
    if created is not None and updated is not None and updated < created:
        record["updatedAt"] = record["createdAt"]
    return record


# PUBLIC_INTERFACE
class TodoStorage:
    """
    Adapter between the repository and a KeyValueStore.

    Keys are namespaced with a prefix: '<prefix>todos' holds the todo array and
    '<prefix>tags' the known tag names. After each load, last_error holds a
    description of any data that had to be ignored (None when everything loaded).
    """

    def __init__(self, store: KeyValueStore, prefix: str = "todo-") -> None:
        self.store = store
        self.prefix = prefix
        self.last_error: Optional[str] = None

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def load(self, key: str) -> List[Any]:
        """
        Return the JSON array stored under key, or [] when it is absent or unreadable.
        Never raises.
        """
        full_key = self._key(key)
        self.last_error = None
        try:
            raw = self.store.get_item(full_key)
        except StorageError as e:
            logger.warning(f"Could not read '{full_key}': {e}")
            self.last_error = f"Could not read stored data for '{full_key}'"
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Stored value for '{full_key}' is not valid JSON; ignoring it: {e}")
            self.last_error = f"Stored data for '{full_key}' is corrupt"
            return []
        if not isinstance(data, list):
            logger.warning(f"Stored value for '{full_key}' is not an array; ignoring it")
            self.last_error = f"Stored data for '{full_key}' is corrupt"
            return []
        return data

    def save(self, key: str, value: Any) -> None:
        """
        Serialize value to JSON and write it under key.

        Raises:
            StorageQuotaExceeded if the store is full.
            StorageWriteError for any other failure.
        """
        full_key = self._key(key)
        try:
            payload = json.dumps(value, ensure_ascii=False)
            self.store.set_item(full_key, payload)
        except StorageQuotaExceeded:
            logger.warning(f"Store is full while writing '{full_key}'")
            raise
        except StorageWriteError as e:
            logger.error(f"Failed to write '{full_key}': {e}")
            raise
        except (TypeError, ValueError, StorageError, OSError) as e:
            logger.error(f"Failed to write '{full_key}': {e}")
            raise StorageWriteError(str(e)) from e

    def load_todos(self) -> List[Todo]:
        """Load, upgrade and validate every stored todo. Invalid records are skipped."""
        todos: List[Todo] = []
        seen_ids = set()
        skipped = 0
        for index, raw in enumerate(self.load(TODOS_KEY)):
            if not isinstance(raw, dict):
                logger.warning(f"Skipping stored todo #{index}: not an object")
                skipped += 1
                continue
            try:
                todo = Todo.model_validate(upgrade_record(raw))
            except ValidationError as e:
                logger.warning(f"Skipping stored todo #{index}: {e}")
                skipped += 1
                continue
            if todo.id in seen_ids:
                logger.warning(f"Skipping stored todo #{index}: duplicate id '{todo.id}'")
                skipped += 1
                continue
            seen_ids.add(todo.id)
            todos.append(todo)
        if skipped:
            self.last_error = f"{skipped} stored todo(s) could not be read and were ignored"
        logger.debug(f"Loaded {len(todos)} todos from '{self._key(TODOS_KEY)}'")
        return todos

    def save_todos(self, todos: Iterable[Todo]) -> None:
        self.save(TODOS_KEY, [t.to_record() for t in todos])

    def load_tags(self) -> List[str]:
        return [t.strip() for t in self.load(TAGS_KEY) if isinstance(t, str) and t.strip()]

    def save_tags(self, tags: Iterable[str]) -> None:
        self.save(TAGS_KEY, sorted(tags))
