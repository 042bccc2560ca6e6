"""Process-wide logging configuration.

Modules create their own logger with ``logging.getLogger(__name__)``; the
API lifespan and the CLI entry-point call :func:`configure_logging` once.
"""

from __future__ import annotations

import logging

from backend.config import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the ``backend`` logger tree.

    Safe to call more than once: the handler is only added the first time.
    """
    logger = logging.getLogger("backend")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False
    logger.setLevel((level or settings.log_level).upper())
