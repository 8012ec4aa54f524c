"""
Logging for askstream: standard ``logging`` with python-json-logger files.

Destinations:
- stderr: colored one-line records for humans
- logs/conversations.jsonl: INFO and above as JSON (answered turns, tool calls)
- logs/errors.jsonl: ERROR and above as JSON

Prompt and answer text stays out of the logs unless ``LOG_CONTENT`` is set,
and even then previews are truncated and scrubbed of obvious secrets.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
import sys

from typing import Any

from pythonjsonlogger import json as jsonlogger

from api.middleware.request_context import get_request_context
from core.constants import (
    LOG_BACKUP_COUNT_CONVERSATIONS,
    LOG_BACKUP_COUNT_ERRORS,
    LOG_MAX_SIZE,
    LOG_PREVIEW_LENGTH,
    LOGS_PATH,
    get_settings,
)

HIDDEN = "[HIDDEN]"

REDACTION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b(?:\d{4}[- ]?){3}\d{4}\b"), "[CARD]"),
    (re.compile(r"\b(?:sk-|pk-|api[-_]?key[-_]?)[A-Za-z0-9]{20,}\b"), "[API_KEY]"),
    (re.compile(r"\b(?:password|secret|token)\s*[:=]\s*\S+", re.IGNORECASE), "[REDACTED]"),
]


def redact(text: str) -> str:
    for pattern, replacement in REDACTION_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class MinLevelFilter(logging.Filter):
    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.level


class ColoredConsoleFormatter(logging.Formatter):
    """``HH:MM:SS [LEVEL] logger - message`` with ANSI-colored levels."""

    RESET = "\x1b[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[38;20m",
        logging.INFO: "\x1b[32;20m",
        logging.WARNING: "\x1b[33;20m",
        logging.ERROR: "\x1b[31;20m",
        logging.CRITICAL: "\x1b[31;1m",
    }

    def _paint(self, text: str, level: int) -> str:
        color = self.LEVEL_COLORS.get(level)
        return f"{color}{text}{self.RESET}" if color else text

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{self.formatTime(record, '%H:%M:%S')} {self._paint(f'[{record.levelname}]', record.levelno)} {record.name}"

        # uvicorn access records carry (client, method, path, http_version, status)
        if record.name == "uvicorn.access" and isinstance(record.args, tuple) and len(record.args) == 5:
            client, method, path, http_version, status = record.args
            status_level = logging.INFO if int(str(status)) < 400 else logging.WARNING if int(str(status)) < 500 else logging.ERROR
            return f'{prefix} - {client} - "{method} {path} HTTP/{http_version}" {self._paint(str(status), status_level)}'

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{prefix} - {message}"


def configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the console format."""
    logging.getLogger("uvicorn").handlers = []
    for name in ("uvicorn.access", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColoredConsoleFormatter())
        uv_logger.handlers = [handler]
        uv_logger.setLevel(logging.INFO)
        uv_logger.propagate = False


def _json_file_handler(filename: str, level: int, backup_count: int, fmt: str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        LOGS_PATH / filename,
        maxBytes=LOG_MAX_SIZE,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.addFilter(MinLevelFilter(level))
    handler.setFormatter(jsonlogger.JsonFormatter(fmt, timestamp=True))
    return handler


def setup_logging(name: str = "askstream", debug: bool | None = None) -> logging.Logger:
    """Build the application logger.

    Args:
        name: Logger name
        debug: Console at DEBUG level (defaults to the DEBUG env var)
    """
    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if debug else logging.INFO)
    console.setFormatter(ColoredConsoleFormatter())
    logger.addHandler(console)

    LOGS_PATH.mkdir(exist_ok=True)
    logger.addHandler(
        _json_file_handler(
            "conversations.jsonl",
            logging.INFO,
            LOG_BACKUP_COUNT_CONVERSATIONS,
            "%(timestamp)s %(levelname)s %(message)s %(thread_id)s %(request_id)s %(tool)s",
        )
    )
    logger.addHandler(
        _json_file_handler(
            "errors.jsonl",
            logging.ERROR,
            LOG_BACKUP_COUNT_ERRORS,
            "%(timestamp)s %(levelname)s %(name)s %(message)s",
        )
    )
    return logger


class AppLogger:
    """Keyword-argument logging with request context attached.

    ``logger.info("msg", thread_id=...)`` puts the keywords on the record;
    the current RequestContext fills in anything not given explicitly.
    """

    def __init__(self, name: str = "askstream"):
        self.logger = setup_logging(name)

    def _extra(self, fields: dict[str, Any]) -> dict[str, Any]:
        if ctx := get_request_context():
            for key, value in ctx.to_log_context().items():
                fields.setdefault(key, value)
        return fields

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, extra=self._extra(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.info(message, extra=self._extra(kwargs))

    def warning(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self.logger.warning(message, extra=self._extra(kwargs), exc_info=exc_info)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self.logger.error(message, extra=self._extra(kwargs), exc_info=exc_info)

    @staticmethod
    def content_logging_enabled() -> bool:
        try:
            return bool(get_settings().log_content)
        except ValueError:
            # Settings not loadable yet
            return False

    @staticmethod
    def preview(text: str) -> str:
        """One-line, truncated, redacted excerpt of ``text``."""
        excerpt = redact(text[:LOG_PREVIEW_LENGTH].replace("\n", " "))
        return excerpt + "..." if len(text) > LOG_PREVIEW_LENGTH else excerpt

    def log_conversation_turn(
        self,
        thread_id: str,
        user_input: str,
        response: str,
        tool_calls: list[str] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Record one committed question/answer pair."""
        tool_calls = tool_calls or []
        show = self.content_logging_enabled()
        question = self.preview(user_input) if show else HIDDEN
        answer = self.preview(response) if show else HIDDEN

        message = f"Q: {question} -> A: {answer}"
        if tool_calls:
            message += f" [{len(tool_calls)} tool calls]"
        if duration_ms:
            message += f" [{duration_ms:.0f}ms]"

        fields: dict[str, Any] = {
            "conversation_turn": True,
            "thread_id": thread_id,
            "chars_input": len(user_input),
            "chars_response": len(response),
            "tool_calls": len(tool_calls),
            "content_logging": show,
        }
        if tool_calls:
            fields["tool_names"] = tool_calls
        if duration_ms is not None:
            fields["ms"] = int(duration_ms)
        self.logger.info(message, extra=self._extra(fields))

    def log_tool_call(self, tool_name: str, args: dict[str, Any], result: Any, provider: str | None = None) -> None:
        """Record a finished tool call. Arguments and result follow LOG_CONTENT."""
        show = self.content_logging_enabled()
        if show:
            message = f"Tool call: {tool_name}({redact(str(args))}) -> {self.preview(str(result))}"
        else:
            message = f"Tool call: {tool_name}(...) -> {HIDDEN}"

        fields: dict[str, Any] = {"tool": tool_name, "content_logging": show}
        if provider:
            fields["provider"] = provider
        self.logger.info(message, extra=self._extra(fields))


# Global logger instance
logger = AppLogger()
