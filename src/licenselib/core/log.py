# log.py
# SPDX-License-Identifier: MIT
"""Logging helpers for licenselib.

The package logger carries a NullHandler, so an application that embeds the
library sees nothing until it calls :func:`configure_logging`. Builders never
touch handlers. They accept a logger argument and fall back to
:func:`get_logger`. Records emitted while a resource bundle is processed go
through :func:`bundle_logger` and carry the bundle label in ``record.bundle``.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import IO, Any, Iterator, MutableMapping, Optional

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "DEFAULT_FORMAT",
    "get_logger",
    "configure_logging",
    "temp_level",
    "bundle_logger",
]

PACKAGE_LOGGER_NAME = "licenselib"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``name`` (a ``licenselib.*`` module name) or the package logger."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def _stream_handler(logger: logging.Logger) -> Optional[logging.StreamHandler]:
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            return handler
    return None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
    fmt: str | None = None,
    datefmt: str | None = None,
    propagate: bool | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Send licenselib records to a stream.

    Calling this repeatedly keeps a single StreamHandler on the logger; a
    handler whose stream has been closed is pointed at the new stream.

    Args:
        level (int | str): Level or level name for the logger.
        stream (IO[str] | None): Destination, ``sys.stderr`` when omitted.
        fmt (str | None): Format string for a newly created handler.
        datefmt (str | None): Date format for a newly created handler.
        propagate (bool | None): Whether records also reach ancestor loggers.
            None means True, so pytest's caplog keeps working.
        logger_name (str): Logger to configure.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = get_logger(logger_name or PACKAGE_LOGGER_NAME)
    logger.setLevel(_coerce_level(level))
    logger.propagate = True if propagate is None else bool(propagate)

    target = stream if stream is not None else sys.stderr
    handler = _stream_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(target)
        handler.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt))
        logger.addHandler(handler)
    elif getattr(handler.stream, "closed", False):
        handler.setStream(target)
    return logger


@contextmanager
def temp_level(level: int | str, name: str | None = None) -> Iterator[logging.Logger]:
    """Override a logger's level for the duration of a ``with`` block."""
    logger = get_logger(name or PACKAGE_LOGGER_NAME)
    saved = logger.level
    logger.setLevel(_coerce_level(level))
    try:
        yield logger
    finally:
        logger.setLevel(saved)


class _BundleAdapter(logging.LoggerAdapter):
    """Attach ``bundle`` to every record without overriding caller extras."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def bundle_logger(logger: logging.Logger, label: str) -> logging.LoggerAdapter:
    """Wrap ``logger`` so its records carry ``record.bundle == label``."""
    return _BundleAdapter(logger, {"bundle": label})
