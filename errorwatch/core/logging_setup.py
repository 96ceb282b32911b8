"""Logging setup for processes that embed the error reporter."""

from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Configure root logging with the errorwatch format.

    Does nothing to handlers that are already installed, so host applications
    keep their own configuration.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(__name__).debug("Logging configured (level=%s)", level)
