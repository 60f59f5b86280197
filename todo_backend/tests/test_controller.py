from typing import Any, Dict, List, Optional

import pytest

from todo_api.contract import TodoRequest
from todo_api.controller import STORAGE_FAILURE_MESSAGE, TodoController
from todo_api.errors import MalformedIdentifierError, StorageError
from todo_api.repositories import InMemoryRepository, Repository


class RecordingRepository(Repository):
    """Stub repository that records calls and can be told to fail."""

    backend = "stub"

    def __init__(self, result: Any = None, error: Optional[Exception] = None) -> None:
        self.calls: List[str] = []
        self._result = result
        self._error = error

    def _call(self, name: str) -> Any:
        self.calls.append(name)
        if self._error is not None:
            raise self._error
        return self._result

    def list_all(self):
        return self._call("list_all")

    def get_by_id(self, todo_id):
        return self._call("get_by_id")

    def create(self, data):
        return self._call("create")

    def update_by_id(self, todo_id, changes):
        return self._call("update_by_id")

    def delete_by_id(self, todo_id):
        return self._call("delete_by_id")


STORED: Dict[str, Any] = {"id": "7", "title": "x", "completed": False}


def req(method="GET", todo_id=None, body=None) -> TodoRequest:
    params = {"id": todo_id} if todo_id is not None else {}
    return TodoRequest(method=method, path_params=params, body=body)


class TestValidation:
    @pytest.mark.parametrize("body", [None, {}, {"title": ""}, {"title": "ok", "completed": "no"}])
    def test_create_invalid_never_reaches_storage(self, body):
        repo = RecordingRepository(result=STORED)
        res = TodoController(repo).create(req("POST", body=body))
        assert res.status_code == 400
        assert res.body["error"] == "ValidationError"
        assert repo.calls == []

    def test_update_invalid_never_reaches_storage(self):
        repo = RecordingRepository(result=STORED)
        res = TodoController(repo).update(req("PATCH", "7", {"completed": None}))
        assert res.status_code == 400
        assert repo.calls == []


class TestStatusMapping:
    def test_create_returns_201_with_stored_entity(self):
        repo = RecordingRepository(result=STORED)
        res = TodoController(repo).create(req("POST", body={"title": "x"}))
        assert res.status_code == 201
        assert res.body == STORED
        assert repo.calls == ["create"]

    def test_list_empty_is_ok(self):
        res = TodoController(RecordingRepository(result=[])).list(req())
        assert res.status_code == 200
        assert res.body == []

    @pytest.mark.parametrize(
        "method,handler,body",
        [
            ("GET", "get_by_id", None),
            ("PATCH", "update", {"title": "y"}),
            ("DELETE", "delete", None),
        ],
    )
    def test_absent_maps_to_404(self, method, handler, body):
        controller = TodoController(RecordingRepository(result=None))
        res = getattr(controller, handler)(req(method, "7", body))
        assert res.status_code == 404
        assert res.body == {"error": "NotFound", "message": "Todo not found"}

    @pytest.mark.parametrize(
        "method,handler,todo_id,body",
        [
            ("GET", "list", None, None),
            ("GET", "get_by_id", "7", None),
            ("POST", "create", None, {"title": "x"}),
            ("PUT", "update", "7", {"title": "y"}),
            ("DELETE", "delete", "7", None),
        ],
    )
    def test_storage_errors_map_to_500(self, method, handler, todo_id, body, caplog):
        repo = RecordingRepository(error=StorageError("disk on fire"))
        res = getattr(TodoController(repo), handler)(req(method, todo_id, body))
        assert res.status_code == 500
        assert res.body == {"error": "StorageError", "message": STORAGE_FAILURE_MESSAGE}
        # The cause is logged, not returned
        assert "disk on fire" in caplog.text

    def test_malformed_identifier_is_a_storage_error(self):
        repo = RecordingRepository(error=MalformedIdentifierError("Malformed todo id: 'zz'"))
        res = TodoController(repo).get_by_id(req("GET", "zz"))
        assert res.status_code == 500


class TestWithInMemoryRepository:
    def test_update_merges_and_is_idempotent(self):
        controller = TodoController(InMemoryRepository())
        created = controller.create(req("POST", body={"title": "x"})).body

        first = controller.update(req("PATCH", created["id"], {"completed": True}))
        second = controller.update(req("PATCH", created["id"], {"completed": True}))
        assert first.status_code == second.status_code == 200
        assert first.body == second.body == {"id": created["id"], "title": "x", "completed": True}

    def test_delete_then_get_is_404(self):
        controller = TodoController(InMemoryRepository())
        created = controller.create(req("POST", body={"title": "x"})).body

        assert controller.delete(req("DELETE", created["id"])).body == created
        assert controller.get_by_id(req("GET", created["id"])).status_code == 404
