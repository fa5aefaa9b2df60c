"""Logging setup for the anchor CLI and commit hook."""

from __future__ import annotations

import logging
from pathlib import Path

_ROOT_LOGGER = "codeanchor"
_CONSOLE_FORMAT = "[anchor] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``codeanchor.<name>``, or the package logger when ``name`` is empty."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}" if name else _ROOT_LOGGER)


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    return logging.ERROR if quiet else logging.INFO


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach a console handler, plus a DEBUG file handler when ``log_file`` is given.

    ``quiet`` keeps the console to errors only; the commit hook runs this way so
    an ordinary commit prints nothing. Calling this again replaces the handlers
    installed by the previous call.
    """
    level = console_level(verbose=verbose, quiet=quiet)
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is None:
        logger.setLevel(level)
        return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    sink = logging.FileHandler(log_file, encoding="utf-8")
    sink.setLevel(logging.DEBUG)
    sink.setFormatter(logging.Formatter(_FILE_FORMAT))
    logger.addHandler(sink)
    logger.setLevel(logging.DEBUG)
    return logger


__all__ = ["configure_logging", "console_level", "get_logger"]
