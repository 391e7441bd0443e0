"""Attach retry diagnostics to a stream or log file.

The engine logs under ``mulligan.retry``: DEBUG for each attempt, WARNING for
retried failures, INFO for the terminal outcome. Nothing is emitted until an
application configures the ``mulligan`` logger, usually through
:meth:`mulligan.config.RetrySettings.configure_logging`.
"""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import TextIO

from mulligan.errors import ErrorCode, MulliganError

LOGGER_NAME = "mulligan"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_OWNED_MARKER = "_mulligan_owned"


def normalize_level(level: str) -> str:
    normalized = level.strip().upper()
    if normalized == "WARNING":
        normalized = "WARN"
    return normalized


def resolve_level(level: str) -> int:
    normalized = normalize_level(level)
    if normalized not in LOG_LEVELS:
        raise MulliganError(
            f"Unknown log level: {level!r}.",
            code=ErrorCode.CONFIG_ERROR,
            hint="Use one of: " + ", ".join(LOG_LEVELS) + ".",
        )
    return LOG_LEVELS[normalized]


def _open_log_file(log_file: str | Path) -> py_logging.Handler:
    path = Path(log_file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return py_logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        raise MulliganError(
            f"Cannot open retry log file {str(path)!r}.",
            code=ErrorCode.CONFIG_ERROR,
            hint=str(exc),
        ) from exc


def _detach_owned_handlers(logger: py_logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _OWNED_MARKER, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    """Route ``mulligan`` records at ``level`` or above to a stream and optional file.

    Calling it again replaces the handlers it installed earlier and leaves
    handlers added by the application alone. An unknown level or an
    unwritable log file raises :class:`MulliganError` with ``CONFIG_ERROR``.
    """
    resolved = resolve_level(level)
    file_handler = _open_log_file(log_file) if log_file else None

    logger = py_logging.getLogger(LOGGER_NAME)
    _detach_owned_handlers(logger)
    logger.setLevel(resolved)
    formatter = py_logging.Formatter(_FORMAT)

    handlers: list[py_logging.Handler] = [py_logging.StreamHandler(stream or sys.stderr)]
    if file_handler is not None:
        handlers.append(file_handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED_MARKER, True)
        logger.addHandler(handler)

    logger.propagate = False
    return logger
