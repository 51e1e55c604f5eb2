"""
Observability Module

Tracing, metrics and structured logging on OpenTelemetry.
"""

from .tracing import (
    init_tracing,
    get_tracer,
    get_trace_id,
    create_span,
    traced,
    add_correlation_id_to_span,
)
from .metrics import (
    init_metrics,
    record_counter,
    record_histogram,
)
from .logging import configure_logging

__all__ = [
    "init_tracing",
    "get_tracer",
    "get_trace_id",
    "create_span",
    "traced",
    "add_correlation_id_to_span",
    "init_metrics",
    "record_counter",
    "record_histogram",
    "configure_logging",
]
