"""Logging setup shared by the CLI, the API and the deployment layer."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "site_publisher"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def configure_logging(*, log_file: Path, verbose: bool) -> logging.Logger:
    """Route package logs to ``log_file`` for one CLI run and return the package logger.

    The file is truncated first, so a log only ever describes the latest
    build or deploy. With ``verbose`` the same records are also echoed to
    stderr through rich at DEBUG level; otherwise the console stays quiet.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    _reset_handlers(logger)
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    log_path = log_file.expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)

    if verbose:
        console_handler = RichHandler(
            console=Console(stderr=True), show_path=False, rich_tracebacks=False
        )
        console_handler.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)
    return logger


def get_logger(component: str | None = None) -> logging.Logger:
    """Return the package logger, or a child logger for ``component``.

    Until ``configure_logging`` runs, records go to a NullHandler.
    """
    package = logging.getLogger(PACKAGE_LOGGER)
    if not package.handlers:
        package.addHandler(logging.NullHandler())
    if component:
        return package.getChild(component)
    return package
