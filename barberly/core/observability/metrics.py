"""
OpenTelemetry Metrics

Counters and histograms for bookings, notifications and the slot cache.
Recording before init_metrics() is a no-op.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

logger = logging.getLogger(__name__)

_meter: Optional[metrics.Meter] = None

_counters: Dict[str, metrics.Counter] = {}
_histograms: Dict[str, metrics.Histogram] = {}

COUNTERS = {
    "appointments_booked_total": "Appointments created",
    "appointments_idempotent_replays_total": "Booking requests answered from an idempotency key",
    "appointments_cancelled_total": "Appointments cancelled",
    "appointments_rescheduled_total": "Appointments moved to a new window",
    "booking_conflicts_total": "Booking or reschedule attempts rejected for overlap",
    "notifications_enqueued_total": "Outbox entries written",
    "notifications_sent_total": "Notifications delivered",
    "notifications_failed_total": "Notification delivery attempts that failed",
    "notifications_dead_total": "Notifications that exhausted their retries",
    "slot_cache_errors_total": "Slot cache backend errors absorbed",
}

HISTOGRAMS = {
    "notification_batch_duration_seconds": "Dispatcher batch duration",
    "availability_compute_duration_seconds": "Slot computation duration",
}


def init_metrics(
    service_name: str = "barberly-backend",
    otlp_endpoint: Optional[str] = None,
    export_interval_ms: int = 60000
) -> metrics.Meter:
    """
    Install a meter provider and create the standard instruments.

    Args:
        service_name: Name of the service
        otlp_endpoint: OTLP exporter endpoint
        export_interval_ms: Export interval in milliseconds
    """
    global _meter

    readers = []
    if otlp_endpoint:
        readers.append(PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=otlp_endpoint, insecure=True),
            export_interval_millis=export_interval_ms
        ))
        logger.info(f"OTel metrics: OTLP exporter configured -> {otlp_endpoint}")

    provider = MeterProvider(
        resource=Resource.create({SERVICE_NAME: service_name}),
        metric_readers=readers,
    )
    metrics.set_meter_provider(provider)
    _meter = metrics.get_meter(service_name)

    for name, description in COUNTERS.items():
        _counters[name] = _meter.create_counter(name, description=description, unit="1")
    for name, description in HISTOGRAMS.items():
        _histograms[name] = _meter.create_histogram(name, description=description, unit="s")

    return _meter


def record_counter(name: str, value: int = 1, attributes: Dict[str, Any] = None):
    if name in _counters:
        _counters[name].add(value, attributes or {})


def record_histogram(name: str, value: float, attributes: Dict[str, Any] = None):
    if name in _histograms:
        _histograms[name].record(value, attributes or {})
