from __future__ import annotations

from typing import Any, Dict, List, Optional


class TodoApiError(Exception):
    """Base exception for the todo service."""

    status_code: int = 500
    error: str = "TodoApiError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# PUBLIC_INTERFACE
class ValidationError(TodoApiError):
    """
    Malformed or missing request input, detected before any storage call.

    `detail` holds the trimmed pydantic error list (loc/msg/type) when the
    failure came from schema validation.
    """

    status_code = 400
    error = "ValidationError"

    def __init__(self, message: str = "Request validation failed", detail: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.detail = detail or []


# PUBLIC_INTERFACE
class NotFound(TodoApiError):
    """No stored todo matched the requested id."""

    status_code = 404
    error = "NotFound"

    def __init__(self, message: str = "Todo not found") -> None:
        super().__init__(message)


# PUBLIC_INTERFACE
class StorageError(TodoApiError):
    """The storage round-trip itself failed."""

    status_code = 500
    error = "StorageError"


class MalformedIdentifierError(StorageError):
    """The id does not fit the storage backend's identifier scheme."""


class ConfigurationError(TodoApiError):
    """Invalid or missing configuration; fatal at startup."""

    error = "ConfigurationError"
