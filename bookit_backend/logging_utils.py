"""
Structured logging helpers for the BookIt backend.
"""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

_context = threading.local()

# Fields promoted to the top level of every JSON record
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "business_id",
    "endpoint",
    "method",
    "status_code",
    "duration_ms",
)

_RESERVED = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
    "getMessage",
    *CONTEXT_FIELDS,
}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, with request context and any `extra` fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info and record.exc_info != (None, None, None):
            exc_type, exc_value, exc_traceback = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": (
                    self.formatException(record.exc_info) if exc_traceback else None
                ),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Colored, human-readable lines for local development.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        base_info = f"{color}[{timestamp}] {record.levelname:<8}{reset}"
        logger_info = f"{record.name:<20}"
        message = record.getMessage()

        context_parts = []
        if hasattr(record, "request_id"):
            context_parts.append(f"req_id={str(record.request_id)[:8]}")
        if hasattr(record, "user_id"):
            context_parts.append(f"user={record.user_id}")
        if hasattr(record, "business_id"):
            context_parts.append(f"business={record.business_id}")
        if hasattr(record, "endpoint"):
            context_parts.append(f"endpoint={record.endpoint}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        location = f" ({record.module}:{record.lineno})"

        formatted = f"{base_info} {logger_info} {message}{context_str}{location}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class RequestContextFilter(logging.Filter):
    """
    Copies the current request's id, user, business and path onto the record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        request = getattr(_context, "request", None)
        if request is None:
            return True

        if hasattr(request, "request_id") and not hasattr(record, "request_id"):
            record.request_id = request.request_id

        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            if not hasattr(record, "user_id"):
                record.user_id = str(user.id)
            business = getattr(user, "business", None)
            if business is not None and not hasattr(record, "business_id"):
                record.business_id = business.slug

        if hasattr(request, "path") and not hasattr(record, "endpoint"):
            record.endpoint = request.path

        if hasattr(request, "method") and not hasattr(record, "method"):
            record.method = request.method

        return True


def get_request_id() -> str:
    """New unique request id."""
    return str(uuid.uuid4())


def setup_logging_context(request):
    """
    Bind `request` to the current thread so log records can be enriched.
    Called from RequestLoggingMiddleware.
    """
    if not hasattr(request, "request_id"):
        request.request_id = get_request_id()

    _context.request = request


def clear_logging_context():
    _context.request = None
