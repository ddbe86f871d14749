# log.py
# SPDX-License-Identifier: MIT
"""Logger setup for licmatch.

Core modules log through ``get_logger(__name__)``: normalization sizes,
analyze fan-out and optimizer steps at DEBUG, cache sizes at INFO. The
package logger carries a NullHandler, so nothing is printed until the host
application (or :meth:`LoggingConfig.apply`) configures output.
"""

from __future__ import annotations

import logging
import sys

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "get_logger",
    "configure_logging",
]

PACKAGE_LOGGER_NAME = "licmatch"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``name``'s logger, or the package logger when omitted."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream=None,
    fmt: str | None = None,
    datefmt: str | None = None,
    propagate: bool | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Send a licmatch logger's records to a stream.

    Calling this again reuses the logger's existing StreamHandler instead of
    stacking another one, so repeated ``LoggingConfig.apply()`` calls do not
    duplicate output.

    Args:
        level (int | str): Level or level name; unknown names mean INFO.
        stream (IO[str] | None): Target stream; defaults to sys.stderr.
        fmt (str | None): Format string for a newly added handler.
        datefmt (str | None): Date format for a newly added handler.
        propagate (bool | None): Whether records also reach ancestor
            loggers. None keeps propagation on so pytest's caplog and host
            handlers still see them.
        logger_name (str): Logger to configure; defaults to the package
            logger.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = get_logger(logger_name)
    logger.setLevel(_coerce_level(level))
    logger.propagate = True if propagate is None else bool(propagate)
    target = sys.stderr if stream is None else stream

    existing = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    if not existing:
        handler = logging.StreamHandler(target)
        handler.setFormatter(logging.Formatter(fmt=fmt or _DEFAULT_FMT, datefmt=datefmt))
        logger.addHandler(handler)
    for handler in existing:
        # a closed stream (e.g. a finished test's capture) is swapped out
        if getattr(handler.stream, "closed", False):
            handler.stream = target
    return logger
