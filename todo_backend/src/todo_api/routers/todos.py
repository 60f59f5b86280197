from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from ..contract import TodoRequest, error_response
from ..controller import TodoController
from ..errors import ValidationError
from ..repositories import Repository
from ..schemas import TodoCreate, TodoOut, TodoUpdate

BODY_METHODS = {"POST", "PUT", "PATCH"}


@dataclass(frozen=True)
class Route:
    """
    One row of the dispatch table: methods + path pattern -> controller method.
    """
    methods: Tuple[str, ...]
    path: str
    handler: str
    summary: str
    success: int = 200
    request_schema: Optional[Type[BaseModel]] = None
    list_response: bool = False


# The only place routes are declared; the APIRouter below is generated from it.
ROUTES: Tuple[Route, ...] = (
    Route(("GET",), "", "list", "List Todos", list_response=True),
    Route(("GET",), "/{id}", "get_by_id", "Get Todo"),
    Route(("POST",), "", "create", "Create Todo", success=201, request_schema=TodoCreate),
    Route(("PUT", "PATCH"), "/{id}", "update", "Update Todo", request_schema=TodoUpdate),
    Route(("DELETE",), "/{id}", "delete", "Delete Todo"),
)

router = APIRouter(
    prefix="/todos",
    tags=["todos"],
)


def get_repository(request: Request) -> Repository:
    """
    Return the process-wide repository opened at startup.
    """
    return request.app.state.repository


def get_controller(repo: Repository = Depends(get_repository)) -> TodoController:
    return TodoController(repo)


async def _read_body(request: Request) -> Optional[Any]:
    if request.method not in BODY_METHODS:
        return None
    raw = await request.body()
    if not raw.strip():
        return None
    # RecursionError: nesting deeper than the decoder can handle
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise ValidationError("Request body is not valid JSON") from e


def _make_endpoint(route: Route) -> Callable[..., Any]:
    async def endpoint(request: Request, controller: TodoController = Depends(get_controller)) -> JSONResponse:
        try:
            body = await _read_body(request)
        except ValidationError as exc:
            response = error_response(exc)
        else:
            todo_request = TodoRequest(
                method=request.method,
                path_params=dict(request.path_params),
                body=body,
            )
            handler = getattr(controller, route.handler)
            # Handlers block on storage; keep them off the event loop
            response = await run_in_threadpool(handler, todo_request)
        return JSONResponse(status_code=response.status_code, content=response.body)

    endpoint.__name__ = route.handler
    return endpoint


def _openapi_extra(route: Route) -> Optional[Dict[str, Any]]:
    if route.request_schema is None:
        return None
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": route.request_schema.model_json_schema()}},
        }
    }


def _responses(route: Route) -> Dict[int, Dict[str, Any]]:
    success: Any = {"description": "Success"}
    success["model"] = List[TodoOut] if route.list_response else TodoOut
    responses: Dict[int, Dict[str, Any]] = {route.success: success, 500: {"description": "Storage error"}}
    if route.request_schema is not None:
        responses[400] = {"description": "Validation error"}
    if "{id}" in route.path:
        responses[404] = {"description": "Todo not found"}
    return responses


for _route in ROUTES:
    # Accept both /todos and /todos/ for the collection routes
    _paths = [_route.path] if _route.path else ["", "/"]
    for _path in _paths:
        # One registration per method keeps OpenAPI operation ids unique
        for _method in _route.methods:
            router.add_api_route(
                _path,
                _make_endpoint(_route),
                methods=[_method],
                status_code=_route.success,
                summary=_route.summary,
                response_model=None,
                responses=_responses(_route),
                openapi_extra=_openapi_extra(_route),
                include_in_schema=_path != "/",
            )
