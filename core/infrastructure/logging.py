"""
Logging infrastructure.

One place configures the root logger; every module then uses
``logging.getLogger(__name__)``.
"""
import logging
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Callback signature failures are logged here, apart from business errors
SECURITY_LOGGER_NAME = "core.security"


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """
    Configure root logging once at application start.

    Args:
        level: Level name or number (e.g. "INFO", logging.DEBUG)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if not any(getattr(h, "_storefront_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._storefront_handler = True
        root.addHandler(handler)
    root.setLevel(level)

    # aiohttp / SQLAlchemy are chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def get_security_logger() -> logging.Logger:
    return logging.getLogger(SECURITY_LOGGER_NAME)
