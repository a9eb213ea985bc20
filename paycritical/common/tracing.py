"""OpenTelemetry setup for processes that embed the gateway (CLI, sandbox).

The gateway client itself only talks to the OpenTelemetry API, so its spans
are no-ops until one of these helpers registers a provider.
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

from paycritical.common.config import settings


def tracing_enabled() -> bool:
    return bool(settings.otel_exporter_otlp_endpoint)


def setup_tracing(service_name: str, endpoint: str | None = None) -> None:
    """Register a tracer provider exporting gateway spans over OTLP HTTP."""

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=endpoint or settings.otel_exporter_otlp_endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def instrument_app(app: FastAPI) -> None:
    """Attach FastAPI auto-instrumentation to the sandbox app."""

    FastAPIInstrumentor.instrument_app(app)
