"""OpenTelemetry wiring for the attribution engine.

Everything here is a no-op unless TEMPO_OTEL_ENABLED is set and the
opentelemetry packages are importable.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from tempo import config

logger = logging.getLogger("tempo.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None

_reader_counter: Any | None = None
_reader_latency_hist: Any | None = None
_reader_failure_counter: Any | None = None
_detection_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def initialize() -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider
    global _reader_counter, _reader_latency_hist, _reader_failure_counter, _detection_counter

    if _initialized:
        return
    _initialized = True

    if not config.OTEL_ENABLED:
        logger.debug("OpenTelemetry disabled (TEMPO_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "tempo-attribution"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "tempo",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("tempo.detector")

    _reader_counter = meter.create_counter(
        "tempo_session_reads_total",
        unit="1",
        description="Session reader invocations by outcome",
    )
    _reader_latency_hist = meter.create_histogram(
        "tempo_session_read_latency_ms",
        unit="ms",
        description="Latency of individual session readers",
    )
    _reader_failure_counter = meter.create_counter(
        "tempo_session_reader_failures_total",
        unit="1",
        description="Session readers that raised unexpectedly",
    )
    _detection_counter = meter.create_counter(
        "tempo_detections_total",
        unit="1",
        description="Detections emitted by tool, method and confidence",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("tempo.detector")
    _enabled = True
    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown() -> None:
    global _enabled
    if not _initialized:
        return
    for provider in (_meter_provider, _trace_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("OpenTelemetry provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_reader_result(tool: str, result: str, duration_ms: float) -> None:
    labels = {"tool": tool or "unknown", "result": result or "unknown"}
    if _enabled and _reader_counter is not None:
        _reader_counter.add(1, labels)
    if _enabled and _reader_latency_hist is not None:
        _reader_latency_hist.record(max(0.0, float(duration_ms)), labels)


def record_reader_failure(tool: str) -> None:
    if _enabled and _reader_failure_counter is not None:
        _reader_failure_counter.add(1, {"tool": tool or "unknown"})


def record_detection(tool: str, method: str, confidence: str) -> None:
    if _enabled and _detection_counter is not None:
        _detection_counter.add(1, {"tool": tool, "method": method, "confidence": confidence})
