"""Logging setup, the OpenTelemetry runtime and span helpers."""

from lifecycle.shared.telemetry.logging import get_logger, setup_logging
from lifecycle.shared.telemetry.telemetry import (
    TracingRuntime,
    current_tracing,
    start_tracing,
    stop_tracing,
)
from lifecycle.shared.telemetry.tracing import (
    TracedOperation,
    add_span_attributes,
    traced,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "TracingRuntime",
    "start_tracing",
    "current_tracing",
    "stop_tracing",
    "traced",
    "add_span_attributes",
    "TracedOperation",
]
