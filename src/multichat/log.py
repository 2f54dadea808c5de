"""Logging setup.

Modules log through ``logging.getLogger(__name__)``; this installs a single
rich handler on the package logger. Calling it twice replaces the handler.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_PACKAGE_LOGGER = "multichat"
_NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore")


def setup_logging(level: str | None = None, console: Console | None = None) -> logging.Logger:
    """Attach a RichHandler to the ``multichat`` logger and return it.

    Args:
        level: Level name. Falls back to ``MULTICHAT_LOG_LEVEL``, then INFO.
        console: Console to write to (defaults to stderr).
    """
    name = (level or os.environ.get("MULTICHAT_LOG_LEVEL") or "INFO").upper()
    logger = logging.getLogger(_PACKAGE_LOGGER)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, name, logging.INFO))
    logger.propagate = False

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
