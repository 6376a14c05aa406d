"""
Logging setup for check-auto-updatable.

Strategy warnings and verbose traces go through the ``auto_updatable``
logger and end up on stderr, prefixed the way Termux build scripts prefix
their messages (``INFO:``, ``WARN:``, ``ERROR:``). stdout carries only the
per-package result lines printed by render.

``--silent`` removes console output entirely; a ``--log-file`` still
receives every record down to DEBUG.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

LOGGER_NAME = "auto_updatable"

CONSOLE_FORMAT = "%(label)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ConsoleFormatter(logging.Formatter):
    """Adds a ``label`` field: the Termux-style level prefix, optionally coloured."""

    LABELS = {
        logging.DEBUG: ("DEBUG:", "\033[36m"),
        logging.INFO: ("INFO:", "\033[32m"),
        logging.WARNING: ("WARN:", "\033[33m"),
        logging.ERROR: ("ERROR:", "\033[31m"),
        logging.CRITICAL: ("ERROR:", "\033[1;31m"),
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        text, color = self.LABELS.get(record.levelno, (record.levelname + ":", ""))
        record.label = f"{color}{text}{self.RESET}" if self.use_colors and color else text
        return super().format(record)


def _console_level(level: str, verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _console_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter(use_colors=stream.isatty()))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return handler


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
    level: str = "INFO",
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the ``auto_updatable`` logger, replacing earlier handlers.

    Args:
        verbose: Show DEBUG records on the console
        quiet: No console output at all (``--silent``)
        log_file: Also write every record to this file
        level: Console level when neither verbose nor quiet
        propagate: Pass records on to the root logger (pytest's caplog)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = propagate

    thresholds = []
    if not quiet:
        console_level = _console_level(level, verbose)
        logger.addHandler(_console_handler(sys.stderr, console_level))
        thresholds.append(console_level)
    if log_file:
        logger.addHandler(_file_handler(log_file))
        thresholds.append(logging.DEBUG)

    if not logger.handlers:
        # Without any handler, records would reach logging.lastResort
        logger.addHandler(logging.NullHandler())
        thresholds.append(logging.WARNING)

    logger.setLevel(min(thresholds))
    return logger


def get_logger() -> logging.Logger:
    """The ``auto_updatable`` logger, set up with defaults on first use."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        setup_logging()
    return logger
