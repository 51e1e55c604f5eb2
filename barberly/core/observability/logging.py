"""
Structured Logging with Trace Correlation

JSON log lines carrying the OpenTelemetry trace id, the HTTP request's
trace id and any appointment correlation id passed through `extra`.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .context import correlation_id_var, trace_id_var
from .tracing import get_current_span, get_trace_id

_RESERVED = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName", "trace_id",
))


class StructuredFormatter(logging.Formatter):
    """JSON formatter with trace context."""

    def format(self, record: logging.LogRecord) -> str:
        span = get_current_span()
        span_id = None
        if span and span.get_span_context().is_valid:
            span_id = format(span.get_span_context().span_id, "016x")

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None),
            "span_id": span_id,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        return json.dumps(log_entry)


class TraceContextFilter(logging.Filter):
    """
    Attach a trace id to every record.

    Prefers the OpenTelemetry span, then the X-Trace-ID of the HTTP request
    being served. A request's X-Correlation-ID fills in correlation_id when
    the call site did not pass one.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or trace_id_var.get() or "no-trace"
        if not getattr(record, "correlation_id", None):
            correlation_id = correlation_id_var.get()
            if correlation_id:
                record.correlation_id = correlation_id
        return True


def configure_logging(
    level: str = "INFO",
    structured: bool = True,
    service_name: str = "barberly-backend"
):
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        structured: Use JSON structured format
        service_name: Service name for the startup line
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] %(message)s"
        ))
    handler.addFilter(TraceContextFilter())
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    logging.info(f"Logging configured: {service_name}, level={level}, structured={structured}")
