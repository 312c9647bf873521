"""Logging configuration for the lifecycle engine.

Log lines carry subject ids and entity types only; never record contents.
"""

import logging
import sys

from lifecycle.core.config import Settings, get_settings

# Third-party loggers that are noisy at INFO (one line per HTTP request).
_QUIET_LOGGERS = ("httpx", "httpcore", "google.auth", "botocore", "urllib3")


def setup_logging(settings: Settings | None = None) -> None:
    """Configure process-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    Output goes to stdout.
    """
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if not settings.debug:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name (usually __name__)."""
    return logging.getLogger(name)
