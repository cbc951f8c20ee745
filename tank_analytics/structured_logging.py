"""
Structured Logging Module for Tank Analytics

Routes structlog events through the stdlib logging tree so a single handler
setup serves both. Production runs emit one JSON object per event; local runs
get a colored console line.

Features:
- JSON format for log aggregation
- Correlation IDs for job/request tracing
- Sensitive data masking
- Log level configuration via environment

Usage:
    from tank_analytics.structured_logging import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)

    logger.info("Fleet analyzed", tanks=42, critical=3)
"""

import json
import logging
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

import structlog

from tank_analytics.settings import get_settings

# Context variable for correlation ID (thread-safe)
correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)

# Fields to mask in logs (security)
SENSITIVE_FIELDS = {"password", "token", "secret", "api_key", "authorization"}

# LogRecord attributes that are not user-supplied fields
_RECORD_ATTRS = {
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
    "asctime",
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output format:
    {
        "timestamp": "2025-03-01T12:00:00.000000+00:00",
        "level": "INFO",
        "logger": "tank_analytics.orchestrators",
        "message": "Fleet analytics complete",
        "correlation_id": "abc-123",
        "tanks": 42
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        log_entry["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        for key, value in _extra_fields(record).items():
            if key.lower() in SENSITIVE_FIELDS:
                log_entry[key] = "***MASKED***"
            else:
                log_entry[key] = self._serialize_value(value)

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": (
                    traceback.format_exception(*record.exc_info)
                    if record.exc_info[0]
                    else None
                ),
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)

    def _serialize_value(self, value: Any) -> Any:
        """Serialize value for JSON"""
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        elif isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        elif isinstance(value, dict):
            return {k: self._serialize_value(v) for k, v in value.items()}
        elif isinstance(value, datetime):
            return value.isoformat()
        else:
            return str(value)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for development.
    Uses colors if terminal supports it.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = correlation_id_var.get()
        prefix = f"[{correlation_id[:8]}] " if correlation_id else ""

        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        message = f"{timestamp} {color}{record.levelname:8}{reset} {prefix}{record.getMessage()}"

        extras = []
        for key, value in _extra_fields(record).items():
            if key.lower() in SENSITIVE_FIELDS:
                value = "***MASKED***"
            extras.append(f"{key}={value}")

        if extras:
            message += f" | {' '.join(extras)}"

        if record.exc_info:
            message += "\n" + "".join(traceback.format_exception(*record.exc_info))

        return message


def _rename_reserved_keys(logger, method_name, event_dict):
    """structlog processor: keep event fields from clobbering LogRecord attributes"""
    for key in list(event_dict):
        if key in _RECORD_ATTRS and key not in ("exc_info", "stack_info"):
            event_dict[f"field_{key}"] = event_dict.pop(key)
    return event_dict


def setup_logging(
    level: str = None,
    format_type: str = None,
    log_file: str = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" for structured or "console" for human-readable
        log_file: Optional file path for logging (always JSON)

    Defaults come from AppSettings:
        LOG_LEVEL: log level
        LOG_FORMAT: format (json or console)
    """
    app = get_settings().app
    level = (level or app.log_level).upper()
    format_type = (format_type or app.log_format).lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.handlers.clear()

    formatter = JSONFormatter() if format_type == "json" else ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            _rename_reserved_keys,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = None):
    """Get a structlog logger bound to the given name"""
    return structlog.get_logger(name)


def generate_correlation_id() -> str:
    """Generate a new correlation ID"""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str = None) -> str:
    """Set correlation ID for current context"""
    if correlation_id is None:
        correlation_id = generate_correlation_id()
    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID"""
    return correlation_id_var.get()


# ===========================================
# DECORATORS
# ===========================================


def log_execution(logger=None, level: str = "info"):
    """
    Decorator to log function execution with timing.

    Usage:
        @log_execution()
        def analyze_fleet(...):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            log = logger or get_logger(func.__module__)
            func_name = func.__name__
            start_time = time.time()

            getattr(log, level)(f"Starting {func_name}", function=func_name)

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                log.error(
                    f"Failed {func_name}",
                    function=func_name,
                    duration_ms=round(duration_ms, 2),
                    success=False,
                    error=str(e),
                    exc_info=True,
                )
                raise

            duration_ms = (time.time() - start_time) * 1000
            getattr(log, level)(
                f"Completed {func_name}",
                function=func_name,
                duration_ms=round(duration_ms, 2),
                success=True,
            )
            return result

        return wrapper

    return decorator
