"""OpenTelemetry runtime for the lifecycle service.

One ``TracingRuntime`` is installed per process. Erasure and export spans
carry the service resource plus the deployment environment; health probes
are not traced.
"""

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from lifecycle.core.config import Settings

logger = logging.getLogger(__name__)

UNTRACED_URLS = "/api/v1/health"


def build_span_exporter(kind: str, endpoint: str | None) -> SpanExporter | None:
    """Map TELEMETRY_EXPORTER to a span exporter; "none" keeps spans in-process."""
    if kind == "none":
        return None
    if kind == "otlp":
        if endpoint:
            return OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://"))
        logger.warning("OTLP exporter selected without TELEMETRY_OTLP_ENDPOINT, using console")
    elif kind != "console":
        logger.warning("Unknown exporter type '%s', using console", kind)
    return ConsoleSpanExporter()


class TracingRuntime:
    """Owns the tracer provider and the instrumentations hung off it."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.provider: TracerProvider | None = None

    @property
    def active(self) -> bool:
        return self.provider is not None

    def start(self) -> None:
        """Install the global tracer provider with the configured exporter."""
        resource = Resource(
            attributes={
                SERVICE_NAME: self.settings.app_name,
                SERVICE_VERSION: self.settings.app_version,
                "deployment.environment": self.settings.telemetry_environment,
                "lifecycle.lock_backend": self.settings.lock_backend,
                "lifecycle.storage_backend": self.settings.storage_backend,
            }
        )
        provider = TracerProvider(
            resource=resource,
            sampler=TraceIdRatioBased(self.settings.telemetry_sample_rate),
        )
        exporter = build_span_exporter(
            self.settings.telemetry_exporter, self.settings.telemetry_otlp_endpoint
        )
        if exporter is not None:
            provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
        self.provider = provider
        logger.info(
            "Tracing started: service=%s exporter=%s sample_rate=%s",
            self.settings.app_name,
            self.settings.telemetry_exporter,
            self.settings.telemetry_sample_rate,
        )

    def instrument_app(self, app: FastAPI) -> None:
        if not self.active:
            return
        FastAPIInstrumentor.instrument_app(
            app, tracer_provider=self.provider, excluded_urls=UNTRACED_URLS
        )
        # trace_id/span_id on every log record
        LoggingInstrumentor().instrument(tracer_provider=self.provider, set_logging_format=True)

    def instrument_lock_client(self) -> None:
        """Trace the Redis commands behind the distributed subject lock."""
        if self.active:
            RedisInstrumentor().instrument(tracer_provider=self.provider)

    def stop(self) -> None:
        if self.provider is None:
            return
        self.provider.shutdown()
        self.provider = None
        logger.info("Tracing stopped")


_runtime: TracingRuntime | None = None


def start_tracing(app: FastAPI, settings: Settings) -> TracingRuntime | None:
    """Start tracing for ``app`` when TELEMETRY_ENABLED is set."""
    global _runtime
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled")
        return None
    runtime = TracingRuntime(settings)
    runtime.start()
    runtime.instrument_app(app)
    _runtime = runtime
    return runtime


def current_tracing() -> TracingRuntime | None:
    return _runtime


def stop_tracing() -> None:
    global _runtime
    if _runtime is not None:
        _runtime.stop()
        _runtime = None
