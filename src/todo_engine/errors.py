from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TodoEngineError(Exception):
    """Base class for errors raised inside the todo engine."""


class StorageError(TodoEngineError):
    """A key-value store could not complete a read or write."""


# PUBLIC_INTERFACE
class StorageQuotaExceeded(StorageError):
    """
    The backing store has no room for the value being written.

    Raised by key-value stores and propagated by the storage adapter so the
    repository can run its pruning recovery.
    """

    def __init__(self, key: str, required: int, available: int) -> None:
        super().__init__(
            f"Storage quota exceeded writing '{key}': {required} bytes required, {available} available"
        )
        self.key = key
        self.required = required
        self.available = available


class StorageWriteError(StorageError):
    """Any non-capacity failure while writing to the backing store."""


class NoticeKind(str, Enum):
    NOT_FOUND = "not_found"
    LOAD_FAILED = "load_failed"
    DATA_PRUNED = "data_pruned"
    STORAGE_FULL = "storage_full"
    SAVE_FAILED = "save_failed"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Notice:
    """
    A user-facing report emitted on the repository's notice stream.

    Fields:
    - kind: which condition occurred (see NoticeKind)
    - message: human readable text for the presentation layer
    - severity: info/warning/error
    - blocking: True when the presentation layer should interrupt the user
    """

    kind: NoticeKind
    message: str
    severity: Severity = Severity.WARNING
    blocking: bool = False
