from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Any, Dict, Generator, List, Optional

from .errors import MalformedIdentifierError, StorageError
from .models import TodoEntity
from .repositories import Repository
from .schemas import TodoCreate


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    completed: str = "completed"


_COLS = _Cols()
_MAX_ROWID = 2**63 - 1


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    One connection is opened at construction and shared by all requests;
    access is serialised by a lock. Every sqlite3.Error is re-raised as
    StorageError.
    """

    backend = "sqlite"

    def __init__(self, db_path: str) -> None:
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._lock = RLock()
        try:
            self._db = sqlite3.connect(db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageError(f"Could not open sqlite database at {db_path}") from e
        self._db.row_factory = sqlite3.Row
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock:
            try:
                # Connection context manager commits on success, rolls back on error
                with self._db:
                    yield self._db
            except sqlite3.Error as e:
                raise StorageError(f"sqlite operation failed: {e}") from e

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COLS.title} TEXT NOT NULL CHECK (length({_COLS.title}) > 0),
                    {_COLS.completed} INTEGER NOT NULL DEFAULT 0
                )
                """
            )

    @staticmethod
    def _parse_id(todo_id: str) -> int:
        # ASCII digits only, within the signed 64-bit rowid range
        if not (todo_id.isascii() and todo_id.isdigit()) or len(todo_id) > 19 or int(todo_id) > _MAX_ROWID:
            raise MalformedIdentifierError(f"Malformed todo id: {todo_id!r}")
        return int(todo_id)

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "completed": bool(row[_COLS.completed]),
        }

    def _select(self, conn: sqlite3.Connection, pk: int) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (pk,)).fetchone()

    def list_all(self) -> List[TodoEntity]:
        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.id} ASC").fetchall()
            return [self._row_to_entity(r) for r in rows]

    def get_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        pk = self._parse_id(todo_id)
        with self._conn() as conn:
            row = self._select(conn, pk)
            return self._row_to_entity(row) if row else None

    def create(self, data: TodoCreate) -> TodoEntity:
        with self._conn() as conn:
            cur = conn.execute(
                f"INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.completed}) VALUES (?, ?)",
                (data.title, 1 if data.completed else 0),
            )
            row = self._select(conn, cur.lastrowid)
            if row is None:
                raise StorageError("Inserted row could not be read back")
            return self._row_to_entity(row)

    def update_by_id(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        pk = self._parse_id(todo_id)
        with self._conn() as conn:
            row = self._select(conn, pk)
            if not row:
                return None
            current = self._row_to_entity(row)

            title = changes.get("title", current["title"])
            completed = changes.get("completed", current["completed"])
            conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.completed} = ?
                WHERE {_COLS.id} = ?
                """,
                (title, 1 if completed else 0, pk),
            )
            return {"id": current["id"], "title": title, "completed": bool(completed)}

    def delete_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        pk = self._parse_id(todo_id)
        with self._conn() as conn:
            row = self._select(conn, pk)
            if not row:
                return None
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (pk,))
            return self._row_to_entity(row)

    def close(self) -> None:
        with self._lock:
            self._db.close()
