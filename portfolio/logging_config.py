"""
Portfolio Hub - Structured Logging Configuration
================================================
JSON-formatted structured logging with request context.

Features:
- JSON output for log aggregation
- Request-scoped context (request_id, user_id, endpoint)
- Performance tracking (duration_ms)
- Log level filtering via LOG_LEVEL / LOG_FORMAT

Usage:
    from portfolio.logging_config import get_logger, log_event

    logger = get_logger(__name__)
    logger.info("Project created", extra={"project_id": project_id})

    log_event("import_saved", saved=2, work=1)
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from portfolio.config import settings


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# Context Variables
# =============================================================================


class LogContext:
    """
    Request-scoped log context backed by contextvars.

    Values set by the middleware follow the request into threadpool
    workers, so sync endpoints log with the same request id.
    """

    _fields = ("request_id", "user_id", "client_ip", "endpoint", "duration_ms")
    _vars: dict[str, ContextVar] = {name: ContextVar(f"log_{name}", default=None) for name in _fields}

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        if key not in cls._vars:
            raise KeyError(key)
        cls._vars[key].set(value)

    @classmethod
    def get(cls, key: str) -> Any:
        return cls._vars[key].get()

    @classmethod
    def set_request_id(cls, request_id: str | None) -> None:
        cls.set("request_id", request_id)

    @classmethod
    def get_request_id(cls) -> str | None:
        return cls.get("request_id")

    @classmethod
    def set_user_id(cls, user_id: str | None) -> None:
        cls.set("user_id", user_id)

    @classmethod
    def set_client_ip(cls, client_ip: str | None) -> None:
        cls.set("client_ip", client_ip)

    @classmethod
    def set_endpoint(cls, endpoint: str | None) -> None:
        cls.set("endpoint", endpoint)

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    def get_all(cls) -> dict[str, Any]:
        return {key: cls.get(key) for key in cls._fields}


# =============================================================================
# JSON Formatter
# =============================================================================


_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName",
    "process", "getMessage", "exc_info", "exc_text", "stack_info",
    "taskName", "message",
}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a consistent JSON format with timestamps,
    log levels, and contextual fields.
    """

    def __init__(
        self,
        *,
        service_name: str = "portfolio-hub",
        environment: str = "production",
        include_extra_fields: bool = True,
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.include_extra_fields = include_extra_fields
        self._iso_format = "%Y-%m-%dT%H:%M:%S.%fZ"

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
        }

        if record.pathname:
            log_entry["file"] = Path(record.pathname).name
            log_entry["line"] = record.lineno
            log_entry["function"] = record.funcName

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        for key, value in LogContext.get_all().items():
            if value is not None:
                log_entry[key] = value

        if self.include_extra_fields:
            for key, value in record.__dict__.items():
                if key not in _STANDARD_ATTRS and not key.startswith("_"):
                    log_entry[key] = value

        return json.dumps(log_entry, default=self._json_serializer, ensure_ascii=False)

    def _format_timestamp(self, created: float) -> str:
        dt = datetime.fromtimestamp(created, tz=timezone.utc)
        return dt.strftime(self._iso_format)

    @staticmethod
    def _json_serializer(obj: Any) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return str(obj)


# =============================================================================
# Console Formatter (human-readable fallback)
# =============================================================================


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output during development."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.LEVEL_COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        request_id = LogContext.get_request_id() or "-"

        base = (
            f"{level_color}{record.levelname:<8}{self.RESET} "
            f"{timestamp} "
            f"[{request_id}] "
            f"{record.name}: "
            f"{record.getMessage()}"
        )
        if record.exc_info:
            base += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return base


# =============================================================================
# Logger Factory
# =============================================================================


def _get_log_level() -> int:
    level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def _should_use_json() -> bool:
    if os.environ.get("LOG_FORMAT", "").lower() == "console":
        return False
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        return True
    # JSON in production, console in dev
    return not settings.debug_mode


def _convert_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


_loggers: dict[str, logging.Logger] = {}
_configured = False


def configure_logging(
    *,
    level: str | int | None = None,
    service_name: str = "portfolio-hub",
    environment: str = "production",
    log_format: str | None = None,
) -> None:
    """
    Configure the root logger with structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Service name for log identification
        environment: Environment label (production, staging, development)
        log_format: Format type ("json" or "console")
    """
    global _configured

    resolved = _get_log_level() if level is None else _convert_level(level)
    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()

    use_json = _should_use_json() if log_format is None else log_format == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    if use_json:
        handler.setFormatter(StructuredFormatter(service_name=service_name, environment=environment))
    else:
        handler.setFormatter(ConsoleFormatter())

    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the configured structured format."""
    if not _configured:
        configure_logging()

    if name not in _loggers:
        logger = logging.getLogger(name)
        logger.setLevel(_get_log_level())
        _loggers[name] = logger

    return _loggers[name]


# =============================================================================
# Helper Functions
# =============================================================================


def log_event(
    event_name: str,
    level: str | LogLevel = LogLevel.INFO,
    **extra_fields: Any,
) -> None:
    """
    Log a structured event with additional fields.

    Example:
        log_event("project_created", project_id="...", category="Recognition & Awards")
    """
    logger = get_logger("event")
    level_name = level.value if isinstance(level, LogLevel) else str(level)
    log_func = getattr(logger, level_name.lower(), logger.info)
    log_func(event_name, extra=extra_fields)


class PerformanceTracker:
    """
    Context manager for tracking operation performance.

    Example:
        with PerformanceTracker("content_extraction", chars=len(text)):
            entries = extractor.extract(text)
    """

    def __init__(self, operation: str, **extra_fields: Any) -> None:
        self.operation = operation
        self.extra = extra_fields
        self._start_time: float | None = None

    def __enter__(self) -> PerformanceTracker:
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        if self._start_time is None:
            return

        self.extra["duration_ms"] = round((time.perf_counter() - self._start_time) * 1000, 2)

        if args[0] is not None:
            self.extra["error"] = str(args[1])
            get_logger("performance").warning(f"{self.operation}_failed", extra=self.extra)
        else:
            get_logger("performance").info(f"{self.operation}_completed", extra=self.extra)


# Auto-configure on import if not already configured
if not _configured:
    configure_logging()
