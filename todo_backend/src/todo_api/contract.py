"""
Transport-independent request and response structs.

The controller only sees these, so it can be exercised without FastAPI.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import TodoApiError


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TodoRequest:
    """
    An inbound request after routing.

    - method: HTTP method, upper case
    - path_params: values extracted from the path pattern (e.g. {"id": "42"})
    - body: parsed JSON body, or None when the request carried no body
    """

    method: str
    path_params: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TodoResponse:
    """Status code plus a JSON-serialisable body."""

    status_code: int
    body: Any = None


# PUBLIC_INTERFACE
def error_response(exc: TodoApiError, message: Optional[str] = None) -> TodoResponse:
    """
    Build the shared error body for a TodoApiError.

    Response format:
        {
            "error": "<error name>",
            "message": "<human readable message>",
            "detail": [...]   # ValidationError only
        }
    """
    body: Dict[str, Any] = {"error": exc.error, "message": message or exc.message}
    detail = getattr(exc, "detail", None)
    if detail:
        body["detail"] = detail
    return TodoResponse(status_code=exc.status_code, body=body)
