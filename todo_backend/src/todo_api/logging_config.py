from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# PUBLIC_INTERFACE
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure root logging for the service.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    # Keep the service's own loggers at the requested level even when the
    # root logger was configured earlier (e.g. by uvicorn or pytest).
    logging.getLogger("todo_api").setLevel(log_level.upper())
