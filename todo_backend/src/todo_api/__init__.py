"""
FastAPI Todo Backend package.

Build the application with `todo_api.main.create_app()`; run it with
`python -m todo_api`.
"""

__version__ = "0.1.0"
