"""Structured logging configuration with correlation fields."""
import logging
import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextvars import ContextVar

# Context variables for log correlation
current_request_id: ContextVar[str] = ContextVar("request_id", default="")
current_table: ContextVar[str] = ContextVar("table", default="")
current_job_id: ContextVar[str] = ContextVar("job_id", default="")
current_vendor_id: ContextVar[str] = ContextVar("vendor_id", default="")


def generate_request_id() -> str:
    """Generate a unique request ID for log correlation."""
    return f"req_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def set_context(
    request_id: Optional[str] = None,
    table: Optional[str] = None,
    job_id: Optional[str] = None,
    vendor_id: Optional[str] = None,
) -> None:
    """Set logging context variables."""
    if request_id is not None:
        current_request_id.set(request_id)
    if table is not None:
        current_table.set(table)
    if job_id is not None:
        current_job_id.set(job_id)
    if vendor_id is not None:
        current_vendor_id.set(vendor_id)


def clear_context() -> None:
    """Clear all logging context variables."""
    current_request_id.set("")
    current_table.set("")
    current_job_id.set("")
    current_vendor_id.set("")


class JSONFormatter(logging.Formatter):
    """JSON log formatter with correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if request_id := current_request_id.get():
            log_data["request_id"] = request_id
        if table := current_table.get():
            log_data["table"] = table
        if job_id := current_job_id.get():
            log_data["job_id"] = job_id
        if vendor_id := current_vendor_id.get():
            log_data["vendor_id"] = vendor_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter with correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx_parts = []
        if request_id := current_request_id.get():
            ctx_parts.append(f"req={request_id[:16]}")
        if table := current_table.get():
            ctx_parts.append(f"table={table}")
        if job_id := current_job_id.get():
            ctx_parts.append(f"job={job_id}")
        if vendor_id := current_vendor_id.get():
            ctx_parts.append(f"vendor={vendor_id}")

        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        msg = f"{timestamp} {record.levelname:8s} {record.name}{ctx_str}: {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def setup_logging(
    level: str = "INFO",
    format_type: str = "text",
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" for structured logs, "text" for human-readable
        logger_name: Specific logger name, or None for root logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))

    if format_type.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger.propagate = False

    return logger


_CONTEXT_VARS = {
    "request_id": current_request_id,
    "table": current_table,
    "job_id": current_job_id,
    "vendor_id": current_vendor_id,
}


class LogContext:
    """Context manager for setting and clearing log context."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        table: Optional[str] = None,
        job_id: Optional[str] = None,
        vendor_id: Optional[str] = None,
    ):
        self.values = {
            "request_id": request_id,
            "table": table,
            "job_id": job_id,
            "vendor_id": vendor_id,
        }
        self._tokens = {}

    def __enter__(self):
        for name, value in self.values.items():
            if value:
                self._tokens[name] = _CONTEXT_VARS[name].set(value)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        return False
