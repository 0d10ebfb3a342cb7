"""Logging setup shared by every propscout module."""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# supabase-py and requests log every HTTP round trip at INFO/DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "urllib3")


def configure_logging(namespace: str = "propscout", level: Optional[str] = None) -> logging.Logger:
    """Return the namespaced logger, installing a single stream handler on first use.

    Messages are written as ``event key=value`` lines, e.g.
    ``search_complete mode=api provider=zoopla count=12``.
    """

    logger = logging.getLogger(namespace)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    logger.addHandler(handler)
    logger.setLevel((level or _LOG_LEVEL).upper())
    logger.propagate = False
    quiet_loggers(NOISY_LOGGERS)
    return logger


def quiet_loggers(names: Iterable[str], level: int = logging.WARNING) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def get_logger(child: Optional[str] = None) -> logging.Logger:
    base = configure_logging()
    if child:
        return base.getChild(child)
    return base
