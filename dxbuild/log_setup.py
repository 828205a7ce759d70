"""Colored console logging for the command line."""

from __future__ import annotations

import logging
import sys

_RESET = "\x1b[0m"
_HANDLER_NAME = "dxbuild-console"

_LINE_COLORS = {
    "ERROR": 31,
    "WARN": 33,
    "INFO": 37,
    "DEBUG": 37,
    "TRACE": 90,
}
_LEVEL_COLORS = {**_LINE_COLORS, "INFO": 32}


def _level_name(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    if levelno >= logging.DEBUG:
        return "DEBUG"
    return "TRACE"


class ColorFormatter(logging.Formatter):
    """Formats records as `[LEVEL] message`, colored by level."""

    def format(self, record: logging.LogRecord) -> str:
        name = _level_name(record.levelno)
        line = f"\x1b[{_LINE_COLORS[name]}m"
        level = f"\x1b[{_LEVEL_COLORS[name]}m{name}{_RESET}"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{line}[{level}{line}] {message}{_RESET}"


def set_up_logging() -> logging.Handler:
    """Send info-level and higher records to standard output, colored."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(ColorFormatter())
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return handler