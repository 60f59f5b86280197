"""CLI entry point for launching the FastAPI app with uvicorn."""

import logging
import sys

import uvicorn

from .errors import ConfigurationError
from .logging_config import setup_logging
from .main import create_app
from .settings import get_settings

logger = logging.getLogger("todo_api")


def main() -> int:
    """Load settings, build the app and serve it. Bad configuration exits non-zero."""
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        setup_logging()
        logger.critical("Invalid configuration: %s", exc)
        return 1

    setup_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
