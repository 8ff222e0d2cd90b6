from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


_DEFAULT_PATHS = {
    "file": "./data/todo-store",
    "sqlite": "./data/todos.db",
}


@dataclass(frozen=True)
class Settings:
    """
    Engine settings loaded from environment variables.

    Env vars:
    - TODO_STORAGE_BACKEND: 'memory' (default), 'file' or 'sqlite'
    - TODO_STORAGE_PATH: directory (file) or db path (sqlite). Defaults per backend
    - TODO_STORAGE_PREFIX: prefix for persisted keys. Default 'todo-'
    - TODO_STORAGE_QUOTA_BYTES: capacity of the store in bytes; 0 disables. Default 5 MiB
    - TODO_DEBOUNCE_MS: debounce delay for filter/search changes. Default 300
    - TODO_PRUNE_THRESHOLD: collection size above which a full store triggers pruning. Default 50
    - TODO_PRUNE_KEEP: number of most recently updated todos kept when pruning. Default 50
    - LOG_LEVEL: loguru level for setup_logging(). Default 'INFO'
    """

    storage_backend: str = "memory"
    storage_path: Optional[str] = None
    storage_prefix: str = "todo-"
    storage_quota_bytes: int = 5 * 1024 * 1024
    debounce_ms: int = 300
    prune_threshold: int = 50
    prune_keep: int = 50
    log_level: str = "INFO"

    @property
    def debounce_seconds(self) -> float:
        return max(self.debounce_ms, 0) / 1000.0


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return max(int(value.strip()), 0)
    except ValueError:
        return default


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return engine settings loaded from environment variables."""
    backend = _get_env("TODO_STORAGE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "file", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    path: Optional[str] = None
    if backend in _DEFAULT_PATHS:
        path = _get_env("TODO_STORAGE_PATH", _DEFAULT_PATHS[backend]).strip()

    return Settings(
        storage_backend=backend,
        storage_path=path,
        storage_prefix=_get_env("TODO_STORAGE_PREFIX", "todo-"),
        storage_quota_bytes=_parse_int(_get_env("TODO_STORAGE_QUOTA_BYTES", str(5 * 1024 * 1024)), 5 * 1024 * 1024),
        debounce_ms=_parse_int(_get_env("TODO_DEBOUNCE_MS", "300"), 300),
        prune_threshold=_parse_int(_get_env("TODO_PRUNE_THRESHOLD", "50"), 50),
        prune_keep=_parse_int(_get_env("TODO_PRUNE_KEEP", "50"), 50),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
