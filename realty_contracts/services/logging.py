"""Logging setup for the contracts API server.

Everything goes to the root logger, which writes to stdout and to a log file.
The level comes from the LOG_LEVEL environment variable, falling back to
`settings.log_level`. Uvicorn's own loggers are routed through the root logger
so access and error lines land in the same file as contract events.
"""

import logging
import sys
from os import getenv
from pathlib import Path

from realty_contracts.config import settings

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def get_log_level() -> int:
    """Resolve the configured level name; unknown names mean INFO."""
    name = (getenv("LOG_LEVEL") or settings.log_level).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_server_logging(log_file: str | None = None) -> None:
    """Configure the root logger for the API server.

    Args:
        log_file: Log file path; defaults to `settings.log_file`. Parent
            directories are created.
    """
    log_path = Path(log_file or settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    level = get_log_level()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    root.addHandler(_handler(logging.FileHandler(log_path), level))

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    # SQL echo is only useful when debugging
    if level > logging.DEBUG and not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging to {log_path} at {logging.getLevelName(level)}")
