"""Structured logging for querycache.

Provides:
- JSON-formatted logs for log aggregation systems
- Statement correlation via context variables
- A human-readable console format for development

Usage:
    from querycache.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")

    with LogContext(statement_id="q-42"):
        logger.info("Resolving policy")  # includes statement_id
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Context variables for statement correlation
statement_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "statement_id", default=""
)
cache_key_var: contextvars.ContextVar[str] = contextvars.ContextVar("cache_key", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "statement_id": statement_id_var,
    "cache_key": cache_key_var,
}

# LogRecord attributes that are not user-supplied extras
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


def _context() -> dict[str, str]:
    return {name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    {"timestamp": "...", "level": "DEBUG", "logger": "querycache.policy.resolver",
     "message": "Using cache policy: ...", "statement_id": "q-42"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(_context())

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    2026-01-10 12:34:56 | DEBUG | querycache.cache.store | Cache write failed | stmt=q-42
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level}{self.RESET}"

        message = record.getMessage()
        context = _context()
        parts = []
        if "statement_id" in context:
            parts.append(f"stmt={context['statement_id']}")
        if "cache_key" in context:
            parts.append(f"key={context['cache_key'][:16]}")
        suffix = f" | {' '.join(parts)}" if parts else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{suffix}"
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))
    root_logger.addHandler(handler)

    # redis-py logs connection churn at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)


class LogContext:
    """Context manager for adding temporary log context.

    Usage:
        with LogContext(statement_id="q-42", cache_key=key):
            logger.info("Caching result")
    """

    def __init__(self, **kwargs: str) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> LogContext:
        for name, value in self.extra.items():
            var = _CONTEXT_VARS.get(name)
            if var is not None:
                self._tokens[name] = var.set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        self._tokens.clear()
