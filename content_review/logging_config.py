"""
Content Review logging.

JSON (or coloured text) log lines with key/value context. Anything bound
with :func:`bind_context` (the request id, for instance) is added to every
line logged while it is bound, so access decisions can be traced back to
the request that caused them.
"""
import json
import logging
import os
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOG_LEVEL = os.environ.get("CONTENT_REVIEW_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("CONTENT_REVIEW_LOG_FORMAT", "json")  # json or text

_bound: ContextVar[Dict[str, object]] = ContextVar("log_context", default={})
_loggers: Dict[str, "StructuredLogger"] = {}


@contextmanager
def bind_context(**context):
    """Attach ``context`` to every log line emitted inside the block."""
    token = _bound.set({**_bound.get(), **context})
    try:
        yield
    finally:
        _bound.reset(token)


def _make_handler(fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if fmt == "json" else TextFormatter())
    return handler


class StructuredLogger:
    """Thin wrapper over a stdlib logger that takes context as keyword arguments."""

    def __init__(self, name: str, level: str = LOG_LEVEL, fmt: str = LOG_FORMAT):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.configure(level, fmt)

    def configure(self, level: str, fmt: str) -> None:
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.logger.handlers = [_make_handler(fmt)]

    def _log(self, level: int, message: str, **context):
        merged = {**_bound.get(), **context}
        self.logger.log(level, message, extra={"context": merged, "logger_name": self.name})

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        if error:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = traceback.format_exc()
        self._log(logging.ERROR, message, **context)

    def decision(self, allowed: bool, message: str, **context):
        """Record an access decision: grants at debug, denials at warning."""
        context["allowed"] = allowed
        self._log(logging.DEBUG if allowed else logging.WARNING, message, **context)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "context", {}))
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        stamp = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{color}[{stamp}] [{record.levelname}]{self.RESET} {record.getMessage()}"

        pairs = [f"{k}={v}" for k, v in getattr(record, "context", {}).items() if k != "traceback"]
        if pairs:
            line += f" \033[90m({' '.join(pairs)}){self.RESET}"
        return line


def get_logger(name: str) -> StructuredLogger:
    """Get or create the ``content_review.<name>`` logger."""
    full_name = f"content_review.{name}"
    if full_name not in _loggers:
        _loggers[full_name] = StructuredLogger(full_name)
    return _loggers[full_name]


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Re-apply level and format to every logger created so far."""
    for logger in _loggers.values():
        logger.configure(level or LOG_LEVEL, fmt or LOG_FORMAT)


api_logger = get_logger("api")
db_logger = get_logger("db")
policy_logger = get_logger("policy")
request_logger = get_logger("requests")
