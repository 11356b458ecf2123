import logging
from typing import Optional, Sequence

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from ..core.config import Settings, settings as default_settings

logger = logging.getLogger("drone.telemetry.spans")


class LoggingSpanExporter(SpanExporter):
    """Reports every finished span through the application log."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        for span in spans:
            ctx = span.get_span_context()
            parent = trace.format_span_id(span.parent.span_id) if span.parent else "0"
            self._log.info(
                "Span reported: %s:%s:%s:%x - %s",
                trace.format_trace_id(ctx.trace_id),
                trace.format_span_id(ctx.span_id),
                parent,
                ctx.trace_flags,
                span.name,
            )
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        pass


def setup_otel(
    settings: Optional[Settings] = None,
    *,
    instrument_logging: bool = True,
) -> TracerProvider:
    settings = settings or default_settings

    # Always-on sampling: every drone span is reported
    resource = Resource.create({"service.name": settings.otel_service_name})
    provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

    if settings.otel_exporter_enabled:
        exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))

    if settings.otel_log_spans:
        provider.add_span_processor(SimpleSpanProcessor(LoggingSpanExporter()))

    trace.set_tracer_provider(provider)

    if instrument_logging:
        LoggingInstrumentor().instrument(set_logging_format=True)

    return provider
