"""OpenTelemetry setup and spans around directory calls."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Span
from sqlalchemy.engine import Engine

from loxodon.core.config import Settings

TRACER_NAME = "loxodon"
UNTRACED_URLS = "health,metrics"


def build_tracer_provider(settings: Settings) -> TracerProvider:
    """Export over OTLP when an endpoint is configured, else print spans to the console."""

    provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: settings.app_name, SERVICE_VERSION: settings.version})
    )
    if settings.otel_exporter_endpoint:
        exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    else:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


def initialise_tracing(settings: Settings) -> None:
    """Install the process-wide tracer provider; later calls are no-ops."""

    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return
    trace.set_tracer_provider(build_tracer_provider(settings))
    LoggingInstrumentor().instrument(set_logging_format=True)


def instrument_application(application: FastAPI) -> None:
    FastAPIInstrumentor.instrument_app(application, excluded_urls=UNTRACED_URLS)


def instrument_engine(engine: Engine) -> None:
    SQLAlchemyInstrumentor().instrument(engine=engine)


@contextmanager
def directory_span(operation: str, **attributes: Any) -> Iterator[Span]:
    """Span named ``directory.<operation>`` with ``directory.*`` attributes."""

    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(f"directory.{operation}") as span:
        for key, value in attributes.items():
            span.set_attribute(f"directory.{key}", value)
        yield span


__all__ = [
    "build_tracer_provider",
    "directory_span",
    "initialise_tracing",
    "instrument_application",
    "instrument_engine",
]
