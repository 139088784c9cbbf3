"""
Gate Logger
===========

Structured logging with keyword context.

Example:
    logger = get_logger("gate.router")
    logger.info("Routing table built", routes=3, pipelines=2)
    # 2024-01-15 10:30:45 [INFO] gate.router: Routing table built routes=3 pipelines=2
"""

from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

import orjson


class LogLevel(IntEnum):
    """Log levels, numerically compatible with the logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Accept a level name ("info") or number."""
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        return cls(value)


@dataclass
class LogRecord:
    """A single structured log entry."""

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    logger_name: str = "gate"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "logger": self.logger_name,
            "message": self.message,
        }

        if self.context:
            data["context"] = self.context

        if self.exception:
            data["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
                "traceback": traceback.format_exception(
                    type(self.exception),
                    self.exception,
                    self.exception.__traceback__,
                ),
            }

        return data


class LogFormatter:
    """Base log formatter."""

    def format(self, record: LogRecord) -> str:
        raise NotImplementedError


class TextFormatter(LogFormatter):
    """
    Plain text formatter.

    Example output:
        2024-01-15 10:30:45 [DEBUG] gate.dispatch: No route matched method=GET path=/missing
    """

    _colors = {
        LogLevel.DEBUG: "\033[36m",
        LogLevel.INFO: "\033[32m",
        LogLevel.WARNING: "\033[33m",
        LogLevel.ERROR: "\033[31m",
        LogLevel.CRITICAL: "\033[35m",
    }
    _reset = "\033[0m"

    def __init__(
        self,
        date_format: str = "%Y-%m-%d %H:%M:%S",
        colors: bool = True,
    ):
        self.date_format = date_format
        self.colors = colors and sys.stderr.isatty()

    def format(self, record: LogRecord) -> str:
        level = record.level.name
        if self.colors:
            level = f"{self._colors.get(record.level, '')}{level}{self._reset}"

        message = record.message
        if record.context:
            pairs = " ".join(f"{k}={v}" for k, v in record.context.items())
            message = f"{message} {pairs}"

        output = (
            f"{record.timestamp.strftime(self.date_format)} "
            f"[{level}] {record.logger_name}: {message}"
        )

        if record.exception:
            output += "\n" + "".join(
                traceback.format_exception(
                    type(record.exception),
                    record.exception,
                    record.exception.__traceback__,
                )
            ).rstrip()

        return output


class JsonFormatter(LogFormatter):
    """One JSON object per line, serialized with orjson."""

    def format(self, record: LogRecord) -> str:
        return orjson.dumps(record.to_dict(), default=str).decode("utf-8")


class LogHandler:
    """Base log handler."""

    def __init__(
        self,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        self.formatter = formatter or TextFormatter()
        self.level = level

    def handle(self, record: LogRecord) -> None:
        if record.level >= self.level:
            self.emit(record)

    def emit(self, record: LogRecord) -> None:
        raise NotImplementedError


class StreamHandler(LogHandler):
    """Write formatted records to a stream (stderr by default)."""

    def __init__(
        self,
        stream: Any = None,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        super().__init__(formatter, level)
        self.stream = stream or sys.stderr

    def emit(self, record: LogRecord) -> None:
        self.stream.write(self.formatter.format(record) + "\n")
        self.stream.flush()


class MemoryHandler(LogHandler):
    """Keep records in a list. Used by tests and the CLI."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG):
        super().__init__(level=level)
        self.records: List[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)


class Logger:
    """
    Structured logger.

    Example:
        logger = Logger("gate")
        logger.info("Request dispatched", path="/api", method="GET")

        scoped = logger.with_context(pipeline="api")
        scoped.debug("Step skipped", step="require_auth")
    """

    def __init__(
        self,
        name: str = "gate",
        level: LogLevel = LogLevel.INFO,
        handlers: Optional[List[LogHandler]] = None,
    ):
        self.name = name
        self.level = level
        self._handlers = handlers if handlers is not None else []
        self._context: Dict[str, Any] = {}

    @property
    def handlers(self) -> List[LogHandler]:
        return self._handlers

    def add_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.append(handler)
        return self

    def remove_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.remove(handler)
        return self

    def with_context(self, **context: Any) -> "Logger":
        """Create a logger sharing handlers, with extra context."""
        child = Logger(name=self.name, level=self.level, handlers=self._handlers)
        child._context = {**self._context, **context}
        return child

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        if level < self.level:
            return

        record = LogRecord(
            level=level,
            message=message,
            context={**self._context, **context},
            exception=exception,
            logger_name=self.name,
        )

        for handler in self._handlers:
            try:
                handler.handle(record)
            except Exception as e:
                sys.stderr.write(f"gate: log handler {type(handler).__name__} failed: {e}\n")

    def log(self, level: LogLevel, message: str, **context: Any) -> None:
        self._log(level, message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, **context)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.ERROR, message, exception, **context)

    def exception(self, message: str, **context: Any) -> None:
        """Log the exception currently being handled at ERROR level."""
        self._log(LogLevel.ERROR, message, sys.exc_info()[1], **context)


# Global logger registry
_loggers: Dict[str, Logger] = {}
_defaults: Dict[str, Any] = {"level": LogLevel.INFO, "handlers": None}


def _default_handlers() -> List[LogHandler]:
    if _defaults["handlers"] is None:
        _defaults["handlers"] = [StreamHandler()]
    return _defaults["handlers"]


def get_logger(name: str = "gate", level: Optional[LogLevel] = None) -> Logger:
    """
    Get or create a named logger.

    Loggers created here share the handlers installed by
    ``configure_logging``.
    """
    if name not in _loggers:
        _loggers[name] = Logger(
            name=name,
            level=level or _defaults["level"],
            handlers=_default_handlers(),
        )
    elif level is not None:
        _loggers[name].level = level
    return _loggers[name]


def configure_logging(
    level: Union[str, int, LogLevel] = LogLevel.INFO,
    format: str = "text",
    stream: Any = None,
    colors: bool = True,
) -> Logger:
    """
    Configure every gate logger.

    Args:
        level: Minimum level, by name or number
        format: "text" or "json"
        stream: Output stream (stderr by default)
        colors: Colorize text output on a TTY

    Returns:
        The root "gate" logger
    """
    level = LogLevel.parse(level)
    if format == "json":
        formatter: LogFormatter = JsonFormatter()
    elif format == "text":
        formatter = TextFormatter(colors=colors)
    else:
        raise ValueError(f"Unknown log format: {format!r}")

    handlers = _default_handlers()
    handlers[:] = [StreamHandler(stream=stream, formatter=formatter, level=level)]
    _defaults["level"] = level

    for logger in _loggers.values():
        logger.level = level

    return get_logger("gate")
