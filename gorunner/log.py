#!/usr/bin/env python3
"""
Console logging for the runner.

Core components never write to the console directly. They receive a
RunnerLogger (info/warn/error) which forwards to a standard library logger,
so tests can hand in their own recorder and the CLI decides formatting once
through setup_logging().
"""

import io
import logging
import sys
from typing import Optional

GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"

_LEVEL_TAGS = {
    logging.DEBUG: ("debg", GREEN),
    logging.INFO: ("info", GREEN),
    logging.WARNING: ("warn", YELLOW),
    logging.ERROR: ("erro", RED),
    logging.CRITICAL: ("erro", RED),
}


class RunnerLogger:
    """Leveled logging capability handed to every runner component."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("gorunner")

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warn(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)


class ConsoleFormatter(logging.Formatter):
    """Renders records as ``2006-01-02 15:04:05|info: message``."""

    def __init__(self, use_colors: bool = True):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        tag, color = _LEVEL_TAGS.get(record.levelno, ("info", GREEN))
        prefix = f"{self.formatTime(record, self.datefmt)}|{tag}: "
        if self.use_colors:
            prefix = f"{color}{prefix}{RESET}"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return prefix + message


def setup_logging(level: str = "info", use_colors: Optional[bool] = None, stream=None) -> logging.Logger:
    """
    Configure the ``gorunner`` logger hierarchy for console output.

    Args:
        level: One of debug, info, warn, error
        use_colors: Force colours on or off (default: only on a TTY)
        stream: Output stream (default: stdout)

    Returns:
        The configured root ``gorunner`` logger
    """
    stream = stream or sys.stdout
    if use_colors is None:
        use_colors = hasattr(stream, "isatty") and stream.isatty()

    numeric_level = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }.get(level.lower(), logging.INFO)

    root = logging.getLogger("gorunner")
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
    root.addHandler(handler)
    root.setLevel(numeric_level)
    root.propagate = False
    return root


class _LogWriter(io.TextIOBase):
    """Line-buffered text stream that emits each line as a log record."""

    def __init__(self, logger: logging.Logger, level: int, prefix: str):
        self._logger = logger
        self._level = level
        self._prefix = prefix
        self._buffer = ""

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        self._buffer += text
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            self._logger.log(self._level, "[%s] %s", self._prefix, line)
        return len(text)

    def flush(self) -> None:
        if self._buffer:
            self._logger.log(self._level, "[%s] %s", self._prefix, self._buffer)
            self._buffer = ""


def create_writer(logger: logging.Logger, level: int, prefix: str) -> io.TextIOBase:
    """Create a file-like object that forwards written text to ``logger``."""
    return _LogWriter(logger, level, prefix)
