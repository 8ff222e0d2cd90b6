"""
Reactive todo-list query engine.

create_engine() is the composition root: it wires the configured key-value
store, the storage adapter, the repository and the query engine together.
"""

from __future__ import annotations

from typing import Optional

from .engine import TodoQueryEngine
from .errors import Notice, NoticeKind, Severity, StorageQuotaExceeded, StorageWriteError, TodoEngineError
from .models import FilterSpec, Priority, Todo, TodoStats
from .repositories import TodoRepository
from .settings import Settings, get_settings
from .storage import TodoStorage
from .stores import KeyValueStore, get_key_value_store
from .streams import Scheduler

__all__ = [
    "FilterSpec",
    "KeyValueStore",
    "Notice",
    "NoticeKind",
    "Priority",
    "Settings",
    "Severity",
    "StorageQuotaExceeded",
    "StorageWriteError",
    "Todo",
    "TodoEngineError",
    "TodoQueryEngine",
    "TodoRepository",
    "TodoStats",
    "TodoStorage",
    "create_engine",
    "get_settings",
]


# PUBLIC_INTERFACE
def create_engine(
    settings: Optional[Settings] = None,
    *,
    store: Optional[KeyValueStore] = None,
    scheduler: Optional[Scheduler] = None,
) -> TodoQueryEngine:
    """
    Build a ready-to-use TodoQueryEngine.

    Args:
        settings: engine settings; read from the environment when omitted.
        store: key-value store override; otherwise built from settings.
        scheduler: debounce scheduler; defaults to the running asyncio loop.

    Returns:
        A TodoQueryEngine whose repository has already loaded persisted state.
    """
    settings = settings or get_settings()
    storage = TodoStorage(store or get_key_value_store(settings), prefix=settings.storage_prefix)
    repository = TodoRepository(
        storage,
        prune_threshold=settings.prune_threshold,
        prune_keep=settings.prune_keep,
    )
    return TodoQueryEngine(repository, scheduler=scheduler, debounce_seconds=settings.debounce_seconds)
