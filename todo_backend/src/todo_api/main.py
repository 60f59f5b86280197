from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .contract import error_response
from .errors import NotFound, TodoApiError
from .logging_config import setup_logging
from .repositories import Repository, create_repository
from .routers import todos as todos_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "todos", "description": "CRUD operations for Todo items."},
]


class _MethodNotAllowed(TodoApiError):
    status_code = 405
    error = "MethodNotAllowed"


def _json(exc: TodoApiError, message: Optional[str] = None) -> JSONResponse:
    response = error_response(exc, message)
    return JSONResponse(status_code=response.status_code, content=response.body)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        repository: Pre-built repository; when omitted one is created from
            settings at startup and closed at shutdown.

    Raises:
        ConfigurationError: if settings are loaded here and are invalid.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.log_level)
        owned = repository is None
        app.state.repository = create_repository(settings) if owned else repository
        logger.info("Todo backend started with %s backend", app.state.repository.backend)
        try:
            yield
        finally:
            if owned:
                logger.info("Closing %s repository", app.state.repository.backend)
                app.state.repository.close()

    app = FastAPI(
        title="Todo Backend",
        description="Backend API service for managing todos with pluggable storage backends.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """
        Give unmatched routes and unsupported methods the shared error body.
        """
        if exc.status_code == 404:
            return _json(NotFound("Not Found"))
        if exc.status_code == 405:
            response = _json(_MethodNotAllowed("Method Not Allowed"))
            response.headers.update(exc.headers or {})
            return response
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "HTTPError", "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Last resort: log the failure and answer 500 without internals.
        """
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "InternalError", "message": "Internal server error"},
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the active backend.
        """
        return {"message": "Healthy", "backend": request.app.state.repository.backend}

    app.include_router(todos_router.router)
    return app
