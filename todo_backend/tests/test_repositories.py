import sqlite3

import pytest

from todo_api.db import SQLiteRepository
from todo_api.errors import ConfigurationError, MalformedIdentifierError, StorageError
from todo_api.repositories import InMemoryRepository, create_repository
from todo_api.schemas import TodoCreate
from todo_api.settings import Settings


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "sqlite":
        r = SQLiteRepository(str(tmp_path / "data" / "todos.db"))
    else:
        r = InMemoryRepository()
    yield r
    r.close()


def missing_id(repo):
    """An id in the backend's own format that was never assigned."""
    created = repo.create(TodoCreate(title="temp"))
    repo.delete_by_id(created["id"])
    return created["id"]


class TestContract:
    def test_create_assigns_string_id(self, repo):
        created = repo.create(TodoCreate(title="Buy milk"))
        assert isinstance(created["id"], str) and created["id"]
        assert created["title"] == "Buy milk"
        assert created["completed"] is False
        assert repo.get_by_id(created["id"]) == created

    def test_ids_are_unique(self, repo):
        ids = {repo.create(TodoCreate(title=f"t{i}"))["id"] for i in range(20)}
        assert len(ids) == 20

    def test_list_all_in_insertion_order(self, repo):
        assert repo.list_all() == []
        created = [repo.create(TodoCreate(title=f"t{i}", completed=i % 2 == 0)) for i in range(4)]
        assert repo.list_all() == created

    def test_absent_is_none(self, repo):
        tid = missing_id(repo)
        assert repo.get_by_id(tid) is None
        assert repo.update_by_id(tid, {"completed": True}) is None
        assert repo.delete_by_id(tid) is None

    def test_update_merges_fields(self, repo):
        created = repo.create(TodoCreate(title="x"))

        updated = repo.update_by_id(created["id"], {"completed": True})
        assert updated == {"id": created["id"], "title": "x", "completed": True}

        renamed = repo.update_by_id(created["id"], {"title": "y"})
        assert renamed == {"id": created["id"], "title": "y", "completed": True}
        assert repo.get_by_id(created["id"]) == renamed

    def test_empty_update_keeps_entity(self, repo):
        created = repo.create(TodoCreate(title="x", completed=True))
        assert repo.update_by_id(created["id"], {}) == created

    def test_delete_returns_last_representation(self, repo):
        created = repo.create(TodoCreate(title="x"))
        repo.update_by_id(created["id"], {"completed": True})

        deleted = repo.delete_by_id(created["id"])
        assert deleted == {"id": created["id"], "title": "x", "completed": True}
        assert repo.get_by_id(created["id"]) is None
        assert repo.list_all() == []

    def test_returned_entities_are_copies(self, repo):
        created = repo.create(TodoCreate(title="x"))
        created["title"] = "mutated"
        fetched = repo.get_by_id(created["id"])
        fetched["completed"] = True
        assert repo.get_by_id(created["id"]) == {"id": created["id"], "title": "x", "completed": False}

    @pytest.mark.parametrize("bad_id", ["not-an-id", "", "-1", "1.5", "١٢"])
    def test_malformed_ids_raise(self, repo, bad_id):
        with pytest.raises(MalformedIdentifierError):
            repo.get_by_id(bad_id)
        with pytest.raises(StorageError):
            repo.update_by_id(bad_id, {"completed": True})
        with pytest.raises(StorageError):
            repo.delete_by_id(bad_id)


class TestInMemoryRepository:
    def test_accepts_hyphenated_uuid(self):
        repo = InMemoryRepository()
        created = repo.create(TodoCreate(title="x"))
        hyphenated = "-".join(
            [created["id"][:8], created["id"][8:12], created["id"][12:16], created["id"][16:20], created["id"][20:]]
        )
        assert repo.get_by_id(hyphenated) == created


class TestSQLiteRepository:
    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "todos.db")
        first = SQLiteRepository(path)
        created = first.create(TodoCreate(title="durable"))
        first.close()

        second = SQLiteRepository(path)
        try:
            assert second.get_by_id(created["id"]) == created
        finally:
            second.close()

    def test_out_of_range_id_is_malformed(self, tmp_path):
        repo = SQLiteRepository(str(tmp_path / "todos.db"))
        try:
            with pytest.raises(MalformedIdentifierError):
                repo.get_by_id("9" * 30)
        finally:
            repo.close()

    def test_sqlite_errors_are_wrapped(self, tmp_path):
        repo = SQLiteRepository(str(tmp_path / "todos.db"))
        repo.close()
        with pytest.raises(StorageError) as info:
            repo.list_all()
        assert isinstance(info.value.__cause__, sqlite3.Error)

    def test_unopenable_path_is_storage_error(self, tmp_path):
        # A directory cannot be opened as a database file
        with pytest.raises(StorageError):
            SQLiteRepository(str(tmp_path))


def test_create_repository_requires_sqlite_path():
    settings = Settings.model_construct(persistence_backend="sqlite", sqlite_db_path=None)
    with pytest.raises(ConfigurationError):
        create_repository(settings)
