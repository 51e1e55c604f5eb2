"""
OpenTelemetry Tracing

Spans around booking, lifecycle and worker operations. Exporting is only
configured when an OTLP endpoint is given; otherwise spans stay in-process
and only feed trace ids into the logs.
"""

import asyncio
import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Status, StatusCode

logger = logging.getLogger(__name__)

_tracer: Optional[trace.Tracer] = None


def init_tracing(
    service_name: str = "barberly-backend",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
) -> trace.Tracer:
    """
    Install a tracer provider.

    Args:
        service_name: Name reported on every span
        service_version: Version reported on every span
        otlp_endpoint: OTLP gRPC collector, e.g. "http://localhost:4317"
    """
    global _tracer

    resource = Resource.create({
        SERVICE_NAME: service_name,
        SERVICE_VERSION: service_version,
    })
    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        logger.info(f"OTel tracing: OTLP exporter configured -> {otlp_endpoint}")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name, service_version)
    return _tracer


def get_tracer() -> trace.Tracer:
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("barberly-backend")
    return _tracer


def get_current_span() -> Optional[Span]:
    return trace.get_current_span()


def get_trace_id() -> Optional[str]:
    """Current trace id as hex, or None outside a recorded span."""
    span = get_current_span()
    if span and span.get_span_context().is_valid:
        return format(span.get_span_context().trace_id, "032x")
    return None


@contextmanager
def create_span(name: str, attributes: Dict[str, Any] = None):
    """
    Start a span as the current span.

    Usage:
        with create_span("booking.persist", {"barber_id": str(barber_id)}) as span:
            ...
    """
    with get_tracer().start_as_current_span(name, attributes=attributes or {}) as span:
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def traced(name: Optional[str] = None) -> Callable:
    """
    Wrap a coroutine function in a span.

    Usage:
        @traced("booking.create")
        async def create_appointment(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        span_name = name or func.__qualname__

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with create_span(span_name, {"function.name": func.__name__}):
                    return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with create_span(span_name, {"function.name": func.__name__}):
                return func(*args, **kwargs)
        return sync_wrapper

    return decorator


def add_correlation_id_to_span(correlation_id: str, span: Optional[Span] = None):
    """Tag the span with the appointment id it concerns."""
    span = span or get_current_span()
    if span:
        span.set_attribute("correlation_id", correlation_id)
