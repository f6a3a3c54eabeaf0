"""Logging setup.

Core modules log through the standard logging module. This module decides
where records go: a Rich console handler for the CLI, or a sink callable
(the TUI log panel) while the terminal is owned by Textual.
"""

import logging
from collections.abc import Callable

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "chatcompare"

LogSink = Callable[[int, str, str], None]


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(level: str | int = "WARNING", console: Console | None = None) -> logging.Logger:
    """Route package logs to a Rich console handler.

    Args:
        level: Level name or number; unknown names fall back to WARNING
        console: Console to write to (default: stderr)

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_parse_level(level))
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    ))
    return logger


class PanelLogHandler(logging.Handler):
    """Forwards log records to a sink taking (level, component, message).

    The component is the last part of the logger name, e.g. 'engine' for
    chatcompare.chat.engine.
    """

    def __init__(self, sink: LogSink, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            component = record.name.rsplit(".", 1)[-1]
            message = record.getMessage()
            if record.exc_info and record.exc_info[1] is not None:
                message = f"{message}: {record.exc_info[1]!r}"
            self._sink(record.levelno, component, message)
        except Exception:
            self.handleError(record)


def attach_sink(sink: LogSink, level: str | int = "DEBUG") -> PanelLogHandler:
    """Send package logs to a sink instead of the console.

    Console handlers are removed so nothing writes over a full-screen UI.

    Returns:
        The installed handler (pass to detach_sink to remove it)
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = PanelLogHandler(sink)
    logger.addHandler(handler)
    logger.setLevel(_parse_level(level))
    return handler


def detach_sink(handler: PanelLogHandler) -> None:
    """Remove a handler installed by attach_sink."""
    logging.getLogger(LOGGER_NAME).removeHandler(handler)
