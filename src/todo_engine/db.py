from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, List, Optional

from .errors import StorageError, StorageQuotaExceeded, StorageWriteError
from .stores import KeyValueStore


@dataclass(frozen=True)
class _Cols:
    table: str = "kv_store"
    key: str = "key"
    value: str = "value"


_COLS = _Cols()


class SQLiteKeyValueStore(KeyValueStore):
    """
    Lightweight SQLite key-value store implementing the KeyValueStore interface.
    """

    def __init__(self, db_path: str, quota_bytes: int = 0) -> None:
        super().__init__(quota_bytes)
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.key} TEXT PRIMARY KEY,
                    {_COLS.value} TEXT NOT NULL
                )
                """
            )

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._conn() as conn:
                row = conn.execute(
                    f"SELECT {_COLS.value} FROM {_COLS.table} WHERE {_COLS.key} = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Could not read '{key}': {e}") from e
        return str(row[_COLS.value]) if row else None

    def _write(self, key: str, value: str) -> None:
        try:
            with self._conn() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {_COLS.table} ({_COLS.key}, {_COLS.value}) VALUES (?, ?)
                    ON CONFLICT({_COLS.key}) DO UPDATE SET {_COLS.value} = excluded.{_COLS.value}
                    """,
                    (key, value),
                )
        except sqlite3.OperationalError as e:
            if "full" in str(e).lower():
                raise StorageQuotaExceeded(key, len(value.encode("utf-8")), 0) from e
            raise StorageWriteError(f"Could not write '{key}': {e}") from e
        except sqlite3.Error as e:
            raise StorageWriteError(f"Could not write '{key}': {e}") from e

    def remove_item(self, key: str) -> None:
        with self._conn() as conn:
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.key} = ?", (key,))

    def keys(self) -> List[str]:
        with self._conn() as conn:
            rows = conn.execute(f"SELECT {_COLS.key} FROM {_COLS.table}").fetchall()
            return [str(r[_COLS.key]) for r in rows]

    def used_bytes(self) -> int:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT COALESCE(SUM(LENGTH(CAST({_COLS.key} AS BLOB)) + LENGTH(CAST({_COLS.value} AS BLOB))), 0) AS used "
                f"FROM {_COLS.table}"
            ).fetchone()
            return int(row["used"]) if row else 0
