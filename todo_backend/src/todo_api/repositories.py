from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError, MalformedIdentifierError
from .models import TodoEntity
from .schemas import TodoCreate
from .settings import Settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract repository contract for todo storage backends.

    Every operation is one storage round-trip. `None` is the only "absent"
    signal; genuine I/O failures and malformed identifiers raise StorageError.
    """

    backend: str = "abstract"

    @abstractmethod
    def list_all(self) -> List[TodoEntity]:
        """Return every stored TodoEntity in insertion order."""

    @abstractmethod
    def get_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def create(self, data: TodoCreate) -> TodoEntity:
        """Create and return a new TodoEntity with a backend-assigned id."""

    @abstractmethod
    def update_by_id(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        """Merge changes into an existing TodoEntity. Return updated entity or None if not found."""

    @abstractmethod
    def delete_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        """Delete a TodoEntity by id. Return the removed entity or None if not found."""

    def close(self) -> None:
        """Release the storage handle. Default is a no-op."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.

    Ids are UUID4 hex strings; dict ordering gives insertion order.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TodoEntity] = {}

    @staticmethod
    def _key(todo_id: str) -> str:
        try:
            return uuid.UUID(hex=todo_id).hex
        except (TypeError, ValueError) as e:
            raise MalformedIdentifierError(f"Malformed todo id: {todo_id!r}") from e

    def list_all(self) -> List[TodoEntity]:
        with self._lock:
            # Return copies to avoid external mutation
            return [t.copy() for t in self._items.values()]

    def get_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        key = self._key(todo_id)
        with self._lock:
            item = self._items.get(key)
            return None if item is None else item.copy()

    def create(self, data: TodoCreate) -> TodoEntity:
        entity: TodoEntity = {
            "id": uuid.uuid4().hex,
            "title": data.title,
            "completed": data.completed,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def update_by_id(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        key = self._key(todo_id)
        with self._lock:
            existing = self._items.get(key)
            if existing is None:
                return None

            # Update only provided fields
            updated = existing.copy()
            if "title" in changes:
                updated["title"] = changes["title"]
            if "completed" in changes:
                updated["completed"] = changes["completed"]

            self._items[key] = updated
            return updated.copy()

    def delete_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        key = self._key(todo_id)
        with self._lock:
            return self._items.pop(key, None)


# PUBLIC_INTERFACE
def create_repository(settings: Settings) -> Repository:
    """
    Build the configured repository. Called once per process at startup.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository on settings.sqlite_db_path
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        if settings.sqlite_db_path is None:
            raise ConfigurationError("SQLITE_DB_PATH is required when PERSISTENCE_BACKEND=sqlite")
        logger.info("Opening sqlite repository at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Using in-memory repository")
    return InMemoryRepository()
