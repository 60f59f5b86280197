from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Dict, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .contract import TodoRequest, TodoResponse, error_response
from .errors import NotFound, StorageError, ValidationError
from .models import TodoEntity
from .repositories import Repository
from .schemas import TodoCreate, TodoOut, TodoUpdate, error_details

logger = logging.getLogger(__name__)

STORAGE_FAILURE_MESSAGE = "Storage operation failed"

_Schema = TypeVar("_Schema", bound=BaseModel)
Handler = Callable[["TodoController", TodoRequest], TodoResponse]


def _maps_errors(handler: Handler) -> Handler:
    """
    Turn ValidationError into 400 and StorageError into 500.

    Storage causes are logged, never sent to the client.
    """

    @functools.wraps(handler)
    def wrapper(self: "TodoController", request: TodoRequest) -> TodoResponse:
        try:
            return handler(self, request)
        except ValidationError as exc:
            logger.debug("Rejected %s %s: %s", request.method, handler.__name__, exc.detail or exc.message)
            return error_response(exc)
        except StorageError as exc:
            logger.exception("Storage failure in %s: %s", handler.__name__, exc)
            return error_response(exc, message=STORAGE_FAILURE_MESSAGE)

    return wrapper


def _parse(schema: Type[_Schema], body: Any) -> _Schema:
    try:
        return schema.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(detail=error_details(e)) from e


def _serialize(entity: TodoEntity) -> Dict[str, Any]:
    return TodoOut(**entity).model_dump()


def _not_found() -> TodoResponse:
    return error_response(NotFound())


# PUBLIC_INTERFACE
class TodoController:
    """
    Maps each route to one repository call and the outcome to a status code.

    - ValidationError (400): raised before the repository is touched
    - NotFound (404): the repository returned None
    - StorageError (500): the repository raised
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    @_maps_errors
    def list(self, request: TodoRequest) -> TodoResponse:
        items = self._repo.list_all()
        return TodoResponse(200, [_serialize(it) for it in items])

    @_maps_errors
    def get_by_id(self, request: TodoRequest) -> TodoResponse:
        item = self._repo.get_by_id(request.path_params["id"])
        if item is None:
            return _not_found()
        return TodoResponse(200, _serialize(item))

    @_maps_errors
    def create(self, request: TodoRequest) -> TodoResponse:
        payload = _parse(TodoCreate, request.body)
        created = self._repo.create(payload)
        logger.info("Created todo %s", created["id"])
        return TodoResponse(201, _serialize(created))

    @_maps_errors
    def update(self, request: TodoRequest) -> TodoResponse:
        """
        Merge update for both PUT and PATCH: provided fields replace stored
        values, omitted fields stay as they are.
        """
        payload = _parse(TodoUpdate, request.body)
        updated = self._repo.update_by_id(request.path_params["id"], payload.changes())
        if updated is None:
            return _not_found()
        logger.info("Updated todo %s", updated["id"])
        return TodoResponse(200, _serialize(updated))

    @_maps_errors
    def delete(self, request: TodoRequest) -> TodoResponse:
        deleted = self._repo.delete_by_id(request.path_params["id"])
        if deleted is None:
            return _not_found()
        logger.info("Deleted todo %s", deleted["id"])
        return TodoResponse(200, _serialize(deleted))
