from __future__ import annotations

from typing import TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    Stored representation of a Todo item, shared by all storage backends.

    Fields:
    - id: Opaque identifier assigned by the backend (always a string)
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - completed: Boolean completion flag
    """

    id: str
    title: str
    completed: bool
