"""Observability helpers."""

from tempo.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_reader_result,
    record_reader_failure,
    record_detection,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_reader_result",
    "record_reader_failure",
    "record_detection",
]
